"""HTTP surface the kiosk page talks to."""
