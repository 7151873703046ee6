#!/usr/bin/env python3
"""Walk through issuing, transferring and retiring tokens on a ledger.

Usage:
    SEQCRED=... LEDGER_NAME=test python five_minute_guide.py
"""

import uuid

from sequence_client import Client, TransactionBuilder, configure_logging


def main():
    configure_logging("WARNING")
    ledger = Client.from_env()
    suffix = uuid.uuid4().hex[:8]
    print(f"Five minute guide - ledger {ledger.config.ledger_name}")
    print("=" * 60)

    results = {"passed": 0, "failed": 0}

    def step(name: str, fn):
        try:
            value = fn()
            print(f"  [PASS] {name}")
            results["passed"] += 1
            return value
        except Exception as e:
            print(f"  [FAIL] {name}: {e}")
            results["failed"] += 1
            return None

    with ledger:
        key = step("keys.create()", ledger.keys.create)
        if key is None:
            return 1
        usd = step(
            "flavors.create()",
            lambda: ledger.flavors.create(id=f"usd-{suffix}", key_ids=[key.id]),
        )
        alice = step(
            "accounts.create(alice)",
            lambda: ledger.accounts.create(id=f"alice-{suffix}", key_ids=[key.id]),
        )
        bob = step(
            "accounts.create(bob)",
            lambda: ledger.accounts.create(id=f"bob-{suffix}", key_ids=[key.id]),
        )
        if None in (usd, alice, bob):
            return 1

        step("transact(issue)", lambda: ledger.transactions.transact(
            TransactionBuilder().issue(
                amount=100, flavor_id=usd.id, destination_account_id=alice.id
            )
        ))
        step("transact(transfer)", lambda: ledger.transactions.transact(
            TransactionBuilder().transfer(
                amount=50,
                flavor_id=usd.id,
                source_account_id=alice.id,
                destination_account_id=bob.id,
            )
        ))
        step("transact(retire)", lambda: ledger.transactions.transact(
            TransactionBuilder().retire(
                amount=20, flavor_id=usd.id, source_account_id=bob.id
            )
        ))

        def check_balances():
            sums = ledger.tokens.sum(
                filter="flavor_id=$1", filter_params=[usd.id], group_by=["account_id"]
            )
            balances = {s.account_id: s.amount for s in sums}
            assert balances.get(alice.id) == 50, f"alice holds {balances.get(alice.id)}"
            assert balances.get(bob.id) == 30, f"bob holds {balances.get(bob.id)}"

        step("tokens.sum()", check_balances)

    print("=" * 60)
    print(f"Results: {results['passed']} passed, {results['failed']} failed")
    return 0 if results["failed"] == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
