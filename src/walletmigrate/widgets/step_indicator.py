"""Migration step indicator."""

from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.css.query import NoMatches
from textual.reactive import reactive
from textual.widget import Widget
from textual.widgets import Label

from walletmigrate.models.migration import MigrationStep

_STEPS = [step for step in MigrationStep if step != MigrationStep.ABORTED]


class StepIndicator(Widget):
    """Shows every step with the current one highlighted."""

    DEFAULT_CSS = """
    StepIndicator {
        height: 3;
        padding: 1 0;
    }

    StepIndicator .step {
        width: 1fr;
        text-align: center;
        color: $text-muted;
    }

    StepIndicator .step-done {
        color: $success;
    }

    StepIndicator .step-current {
        text-style: bold;
        color: $accent;
    }

    StepIndicator.aborted .step {
        color: $error;
    }
    """

    step: reactive[MigrationStep] = reactive(MigrationStep.PRE_CHECKS)

    def compose(self) -> ComposeResult:
        with Horizontal():
            for step in _STEPS:
                yield Label(
                    f"{step.value + 1}. {step.title}",
                    classes=f"step {self._step_class(step)}",
                    id=f"step-{step.value}",
                )

    def watch_step(self, step: MigrationStep) -> None:
        """Restyle the labels."""
        self.set_class(step == MigrationStep.ABORTED, "aborted")
        for item in _STEPS:
            try:
                label = self.query_one(f"#step-{item.value}", Label)
            except NoMatches:
                return
            label.set_classes(f"step {self._step_class(item)}")

    def _step_class(self, item: MigrationStep) -> str:
        if self.step == MigrationStep.ABORTED:
            return ""
        if item < self.step or (self.step == MigrationStep.COMPLETE and item == self.step):
            return "step-done"
        if item == self.step:
            return "step-current"
        return ""
