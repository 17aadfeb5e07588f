class GPKError(Exception):
    pass


class FormatError(GPKError):
    """The archive trailer is missing, damaged or points outside the file."""


class BadSignature(FormatError):
    pass


class TruncatedArchive(FormatError):
    pass


class DecodeError(GPKError):
    """The index blob could not be turned back into an entry table."""


class EmptySize(DecodeError):
    pass


class TruncatedEnvelope(DecodeError):
    pass


class CodecError(DecodeError):
    def __init__(self, detail, code=None):
        DecodeError.__init__(self, detail)
        self.detail = detail
        self.code = code


class ExtractError(GPKError):
    """One entry could not be written out; the rest of the archive is fine."""

    def __init__(self, name, cause):
        GPKError.__init__(self, "%s: %s" % (name, cause))
        self.name = name
        self.cause = cause


class TruncatedPayload(ExtractError):
    pass
