class DecodeError(ValueError):
    pass


class LeafDecodeError(DecodeError):
    def __init__(self, field: str, message: str):
        super().__init__("cannot read {}: {}".format(field, message))
        self.field = field


class TicketDecodeError(DecodeError):
    pass


class FetchError(Exception):
    """Aborts a release fetch. `stage` names the step that failed, e.g. "log-head"."""

    def __init__(self, stage: str, message: str):
        super().__init__("{}: {}".format(stage, message))
        self.stage = stage
