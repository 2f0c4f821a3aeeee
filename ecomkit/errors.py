class KitError(Exception):
    """Base class for every error raised by the kit pipeline."""


class InvalidRequestError(KitError, ValueError):
    """
    The job could not be accepted (unsupported pack size, missing assets,
    blank category/style, ...). Raised before any inference work starts.
    """


class InferenceError(KitError):
    """An inference call failed after the client exhausted its retries."""


class NoImageProducedError(InferenceError):
    """The image model answered, but the response carried no image payload."""
