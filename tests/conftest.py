import os

# Allow Qt-based tests to run headless (no display server available).
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
