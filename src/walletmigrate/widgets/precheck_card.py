"""Pre-check result card."""

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.reactive import reactive
from textual.widget import Widget
from textual.widgets import Label

from walletmigrate.models.precheck import PreCheckResult, PreCheckStatus


class PreCheckCard(Widget):
    """Display card for one pre-check."""

    DEFAULT_CSS = """
    PreCheckCard {
        height: auto;
        margin: 0 0 1 0;
        padding: 1;
        border: solid $primary;
    }

    PreCheckCard .card-title {
        text-style: bold;
    }

    PreCheckCard .card-status {
        dock: right;
    }

    PreCheckCard .card-details {
        color: $text-muted;
    }

    PreCheckCard.status-success {
        border: solid $success;
    }

    PreCheckCard.status-warning {
        border: solid $warning;
    }

    PreCheckCard.status-error {
        border: solid $error;
    }
    """

    result: reactive[PreCheckResult] = reactive(PreCheckResult(message=""))

    def __init__(self, title: str, result: PreCheckResult, **kwargs) -> None:
        super().__init__(**kwargs)
        self.check_title = title
        self.result = result
        self._update_class()

    def compose(self) -> ComposeResult:
        with Vertical():
            with Horizontal():
                yield Label(self.check_title, classes="card-title")
                yield Label(self._status_badge, classes="card-status", id="badge")
            yield Label(self.result.message, id="message")
            yield Label(self.result.details or "", classes="card-details", id="details")

    def watch_result(self, result: PreCheckResult) -> None:
        self._update_class()
        try:
            self.query_one("#badge", Label).update(self._status_badge)
            self.query_one("#message", Label).update(result.message)
            self.query_one("#details", Label).update(result.details or "")
        except NoMatches:
            pass

    def _update_class(self) -> None:
        for status in PreCheckStatus:
            self.remove_class(f"status-{status.value}")
        self.add_class(f"status-{self.result.status.value}")

    @property
    def _status_badge(self) -> str:
        badges = {
            PreCheckStatus.LOADING: "[...]",
            PreCheckStatus.SUCCESS: "[OK]",
            PreCheckStatus.WARNING: "[WARN]",
            PreCheckStatus.ERROR: "[FAILED]",
        }
        return badges[self.result.status]
