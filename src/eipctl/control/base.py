from eipctl.aws.context import AwsContext


class Controller:
    """Shared wiring for the procedures: an AWS handle plus progress callbacks."""

    def __init__(self, ctx: AwsContext, on_status=None, debug=False, on_debug=None):
        self.ctx = ctx
        self.on_status = on_status
        self.debug = debug
        self.on_debug = on_debug

    def _notify(self, message: str) -> None:
        if self.on_status:
            self.on_status(message)

    def _debug_callback(self, message: str) -> None:
        if self.debug and self.on_debug:
            self.on_debug(message)
