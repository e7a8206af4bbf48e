"""MCC Events: upcoming events, week grid, kiosk feed and calendar files."""
