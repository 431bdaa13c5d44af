import os

import uvicorn

from kiosk import KioskConfig, setup_logging


def main() -> None:
    config = KioskConfig.from_env()
    setup_logging(config)
    uvicorn.run(
        "fastapi_app.main:app",
        host=os.getenv("KIOSK_HOST", "127.0.0.1"),
        port=int(os.getenv("KIOSK_PORT", "8080")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
