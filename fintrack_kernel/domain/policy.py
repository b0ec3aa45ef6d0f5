"""
BalancePolicy -- which balance-decreasing deltas are guarded.

Money leaving an account because the caller asked for it (expense creation,
expense increase, goal allocation, transfer debit) is ALWAYS guarded against
overdraft.  The policy decides the remaining debits: income decreases and
income deletions.

    guard_all_debits=True   (default) no operation may leave a balance < 0
    guard_all_debits=False  income edits/deletes may drive a balance < 0

The policy is built from configuration by fintrack_config.bridges; the
kernel never reads configuration itself.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class BalancePolicy:
    guard_all_debits: bool = True

    def allow_negative_for_reversal(self) -> bool:
        """Whether an income decrease or deletion may overdraw the account."""
        return not self.guard_all_debits


DEFAULT_BALANCE_POLICY = BalancePolicy()
