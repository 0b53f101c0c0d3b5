class FatalSetupError(Exception):
    """Raised before any role assignment is attempted; aborts the whole run."""


class NotAuthenticatedError(FatalSetupError):
    pass


class InputFileNotFoundError(FatalSetupError):
    pass


class UnsupportedFormatError(FatalSetupError):
    pass


class MissingColumnError(FatalSetupError):
    pass


class NoValidInputError(FatalSetupError):
    pass


class UnknownRegionError(FatalSetupError):
    pass
