class ReconciliationError(Exception):
    """Base class for reconciliation errors."""


class DuplicateTransactionError(ReconciliationError):
    """A transaction with this id has already been recorded."""

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} already recorded")


class ClaimConflictError(ReconciliationError):
    """The candidate order stopped being pending before it could be claimed."""

    def __init__(self, order_id: str, transaction_id: str):
        self.order_id = order_id
        self.transaction_id = transaction_id
        super().__init__(f"Order {order_id} was claimed before {transaction_id} could take it")
