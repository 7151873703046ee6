"""Request body builder for ``transactions.transact``."""

from typing import Any, Optional

from .errors import ConfigurationError


class TransactionBuilder:
    """Collects the actions of one transaction.

    Example:
        >>> builder = TransactionBuilder()
        >>> builder.issue(amount=100, flavor_id="usd", destination_account_id="alice")
        >>> builder.transfer(amount=50, flavor_id="usd",
        ...                  source_account_id="alice", destination_account_id="bob")
        >>> client.transactions.transact(builder)
    """

    def __init__(self):
        self.actions: list[dict[str, Any]] = []
        self.transaction_tags: dict[str, Any] = {}

    def to_dict(self) -> dict[str, Any]:
        return {"actions": self.actions, "transaction_tags": self.transaction_tags}

    def set_transaction_tags(self, tags: dict[str, Any]) -> "TransactionBuilder":
        self.transaction_tags = tags
        return self

    def add_action(self, **action: Any) -> "TransactionBuilder":
        if action.get("amount") is None:
            raise ConfigurationError("'amount' must be provided")
        self.actions.append({k: v for k, v in action.items() if v is not None})
        return self

    def issue(
        self,
        *,
        amount: int,
        flavor_id: str,
        destination_account_id: str,
        token_tags: Optional[dict[str, Any]] = None,
        action_tags: Optional[dict[str, Any]] = None,
    ) -> "TransactionBuilder":
        """Issue new tokens to a destination account."""
        return self.add_action(
            type="issue",
            amount=amount,
            flavor_id=flavor_id,
            destination_account_id=destination_account_id,
            token_tags=token_tags or {},
            action_tags=action_tags or {},
        )

    def transfer(
        self,
        *,
        amount: int,
        flavor_id: str,
        source_account_id: str,
        destination_account_id: str,
        filter: Optional[str] = None,
        filter_params: Optional[list[Any]] = None,
        token_tags: Optional[dict[str, Any]] = None,
        action_tags: Optional[dict[str, Any]] = None,
    ) -> "TransactionBuilder":
        """Move tokens from a source account to a destination account.

        Args:
            filter: Token filter restricting which tokens are moved.
            filter_params: Values interpolated into ``filter``.
        """
        return self.add_action(
            type="transfer",
            amount=amount,
            flavor_id=flavor_id,
            source_account_id=source_account_id,
            destination_account_id=destination_account_id,
            filter=filter,
            filter_params=filter_params,
            token_tags=token_tags or {},
            action_tags=action_tags or {},
        )

    def retire(
        self,
        *,
        amount: int,
        flavor_id: str,
        source_account_id: str,
        filter: Optional[str] = None,
        filter_params: Optional[list[Any]] = None,
        action_tags: Optional[dict[str, Any]] = None,
    ) -> "TransactionBuilder":
        """Take tokens from a source account and retire them."""
        return self.add_action(
            type="retire",
            amount=amount,
            flavor_id=flavor_id,
            source_account_id=source_account_id,
            filter=filter,
            filter_params=filter_params,
            action_tags=action_tags or {},
        )
