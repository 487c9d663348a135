"""Face matching service: decide whether two face images show the same person."""

__version__ = "1.0.0"
