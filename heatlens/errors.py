# heatlens/errors.py


class HeatlensError(Exception):
    """Base class for everything the overlay engine raises on purpose."""


class ImageDecodeError(HeatlensError):
    """The base image could not be fetched or decoded."""


class InvalidGridError(HeatlensError, ValueError):
    """Heat grid is empty, ragged or not two-dimensional."""
