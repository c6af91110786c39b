"""Raindrop Screenshots — upload new screenshots to Raindrop.io.

Watches the screenshot folder, uploads each new screenshot as a file
raindrop, then moves the local copy into an "uploaded" folder (or
deletes it) and shows a desktop notification.
"""

__version__ = "1.0.0"
__app_name__ = "Raindrop Screenshots"
