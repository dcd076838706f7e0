"""Failures surfaced to whoever asked for a patch or a launch."""


class PatcherError(Exception):
    """Base class. The message is meant to be shown to the user as-is."""


class PayloadTooLarge(PatcherError):
    def __init__(self, max_len, got_len):
        self.max_len = max_len
        self.got_len = got_len
        super().__init__(f"URL too long! Max: {max_len}, Got: {got_len}. Pick a shorter server ID.")


class InvalidServerId(PatcherError):
    pass


class AcquisitionError(PatcherError):
    pass


class StagingError(PatcherError):
    pass


class BinaryIoError(PatcherError):
    pass


class SigningError(PatcherError):
    pass


class NotInstalled(PatcherError):
    pass


class ExecutableMissing(PatcherError):
    pass


class SpawnError(PatcherError):
    pass


class ServerLookupError(PatcherError):
    pass


class CleanupWarning(UserWarning):
    """A leftover temporary file could not be removed."""
