"""Exception hierarchy for the face matching pipeline.

Lower layers translate library failures (httpx, base64, OpenCV, dlib) into
these types. Only the request handlers turn them into HTTP responses.
"""


class FaceMatchingError(Exception):
    """Base exception for face matching errors.

    Raised directly for unexpected failures in model invocation or
    orchestration.
    """
    pass


class ImageLoadError(FaceMatchingError):
    """Base exception for failures while turning a reference into an image."""
    pass


class FetchError(ImageLoadError):
    """Exception raised when a remote image cannot be retrieved."""
    pass


class DecodeError(ImageLoadError):
    """Exception raised when bytes or a payload are not a valid image."""
    pass


class InvalidRequestError(FaceMatchingError):
    """Exception raised when a request does not carry two image references."""
    pass


class ServiceNotReadyError(FaceMatchingError):
    """Exception raised when the face models have not finished loading."""
    pass


class PayloadTooLargeError(FaceMatchingError):
    """Exception raised when a request body exceeds the configured limit."""
    pass
