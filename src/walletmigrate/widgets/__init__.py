"""Custom widgets for WalletMigrate."""

from walletmigrate.widgets.completion_panel import CompletionPanel
from walletmigrate.widgets.precheck_card import PreCheckCard
from walletmigrate.widgets.step_indicator import StepIndicator
from walletmigrate.widgets.transfer_panel import TransferPanel

__all__ = [
    "CompletionPanel",
    "PreCheckCard",
    "StepIndicator",
    "TransferPanel",
]
