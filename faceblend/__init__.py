"""Old School Faces: a daily puzzle built around one blended portrait of two people."""
from faceblend.version import APP_VERSION

__version__ = APP_VERSION
