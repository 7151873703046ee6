"""Tests for the Client and its resource modules."""

import json
import logging
import unittest

import httpx

from sequence_client import Client, ClientConfig, TransactionBuilder, configure_logging
from sequence_client.errors import APIError, ConfigurationError, UnauthorizedError
from sequence_client.logging import LOGGER_NAME, JsonFormatter
from sequence_client.models import Account, Action, Key, TokenGroup, TokenSum

from .fake_ledger import FakeLedger, json_response


def no_sleep(seconds):
    pass


class ClientTestCase(unittest.TestCase):
    def setUp(self):
        self.ledger = FakeLedger(team_name="acme")
        self.client = Client(
            ledger_name="test",
            credential="cred",
            addr="api.test",
            http_transport=self.ledger.transport(),
            sleep=no_sleep,
        )
        self.addCleanup(self.client.close)

    def route(self, endpoint, reply):
        self.ledger.routes[endpoint] = reply if callable(reply) else (lambda body: reply)


class TestClientConstruction(unittest.TestCase):
    def test_requires_ledger_name(self):
        """Client() without a ledger name should raise."""
        with self.assertRaises(ConfigurationError):
            Client(credential="cred")

    def test_requires_credential(self):
        """Client() without a credential should raise."""
        with self.assertRaises(ConfigurationError):
            Client(ledger_name="test")

    def test_unknown_option(self):
        """Client() should reject unknown options."""
        with self.assertRaises(ConfigurationError):
            Client(ledger_name="test", credential="cred", retries=3)

    def test_config_and_options_are_exclusive(self):
        """Client() should not accept config together with options."""
        config = ClientConfig(ledger_name="test", credential="cred")
        with self.assertRaises(ConfigurationError):
            Client(ledger_name="other", config=config)

    def test_config(self):
        """Client(config=) should use the given config."""
        config = ClientConfig(ledger_name="test", credential="cred", read_timeout=5.0)
        with Client(config=config) as client:
            self.assertIs(client.config, config)

    def test_no_request_until_first_call(self):
        """Creating a client should not touch the network."""
        ledger = FakeLedger()
        with Client(ledger_name="test", credential="cred", http_transport=ledger.transport()):
            pass
        self.assertEqual(ledger.requests, [])


class TestResources(ClientTestCase):
    """Tests for the request bodies sent by each resource module."""

    def test_keys_create(self):
        """keys.create() should post to the team and ledger path."""
        self.route("create-key", lambda body: {"id": body.get("id", "generated")})
        key = self.client.keys.create()
        self.assertIsInstance(key, Key)
        self.assertEqual(key.id, "generated")
        self.assertEqual(self.ledger.bodies("create-key"), [{}])
        self.assertEqual(self.ledger.requests[-1].url.path, "/acme/test/create-key")

    def test_accounts_create(self):
        """accounts.create() should send only the given fields."""
        self.route("create-account", lambda body: body)
        account = self.client.accounts.create(id="alice", key_ids=["k1"], tags={"type": "checking"})
        self.assertIsInstance(account, Account)
        self.assertEqual(
            self.ledger.bodies("create-account"),
            [{"id": "alice", "key_ids": ["k1"], "tags": {"type": "checking"}}],
        )

    def test_accounts_create_requires_keys(self):
        """accounts.create() with no keys should raise locally."""
        with self.assertRaises(ConfigurationError):
            self.client.accounts.create(key_ids=[])
        self.assertEqual(self.ledger.requests, [])

    def test_unknown_argument_is_rejected(self):
        """Unknown keyword arguments should raise TypeError."""
        with self.assertRaises(TypeError):
            self.client.accounts.create(key_ids=["k1"], alias="alice")

    def test_update_tags(self):
        """update_tags() should send id and tags for each resource."""
        self.route("update-account-tags", json_response(204))
        self.route("update-flavor-tags", json_response(204))
        self.route("update-action-tags", json_response(204))
        self.client.accounts.update_tags(id="alice", tags={"a": 1})
        self.client.flavors.update_tags(id="usd", tags=None)
        self.client.actions.update_tags(id="act1", tags={"b": 2})
        self.assertEqual(self.ledger.bodies("update-account-tags"), [{"id": "alice", "tags": {"a": 1}}])
        self.assertEqual(self.ledger.bodies("update-flavor-tags"), [{"id": "usd", "tags": None}])
        self.assertEqual(self.ledger.bodies("update-action-tags"), [{"id": "act1", "tags": {"b": 2}}])

    def test_update_tags_requires_id(self):
        """update_tags() with a blank id should raise locally."""
        with self.assertRaises(ConfigurationError):
            self.client.accounts.update_tags(id="", tags={})

    def test_accounts_list(self):
        """accounts.list() should send the filter and iterate items."""
        self.route("list-accounts", {"items": [{"id": "alice"}, {"id": "bob"}], "cursor": "c", "last_page": True})
        accounts = list(self.client.accounts.list(filter="tags.type=$1", filter_params=["checking"]))
        self.assertEqual([a.id for a in accounts], ["alice", "bob"])
        self.assertEqual(
            self.ledger.bodies("list-accounts"),
            [{"filter": "tags.type=$1", "filter_params": ["checking"]}],
        )

    def test_actions_sum(self):
        """actions.sum() should send group_by and page_size."""
        self.route("sum-actions", {"items": [{"amount": 30, "flavor_id": "usd"}], "last_page": True})
        page = self.client.actions.sum(group_by=["flavor_id"]).page(size=10)
        self.assertIsInstance(page.items[0], Action)
        self.assertEqual(page.items[0].amount, 30)
        self.assertEqual(self.ledger.bodies("sum-actions"), [{"group_by": ["flavor_id"], "page_size": 10}])

    def test_tokens(self):
        """tokens.list() and tokens.sum() should translate their items."""
        self.route("list-tokens", {"items": [{"amount": 5, "flavor_id": "usd", "account_id": "alice"}], "last_page": True})
        self.route("sum-tokens", {"items": [{"amount": 5}], "last_page": True})
        groups = list(self.client.tokens.list(filter="account_id=$1", filter_params=["alice"]))
        sums = list(self.client.tokens.sum())
        self.assertIsInstance(groups[0], TokenGroup)
        self.assertIsInstance(sums[0], TokenSum)
        self.assertEqual(sums[0].amount, 5)

    def test_transact(self):
        """transact() should send the builder's actions and tags."""
        self.route("transact", lambda body: {"id": "tx1", "actions": body["actions"]})
        builder = (
            TransactionBuilder()
            .issue(amount=100, flavor_id="usd", destination_account_id="alice")
            .transfer(amount=40, flavor_id="usd", source_account_id="alice", destination_account_id="bob")
            .set_transaction_tags({"batch": 1})
        )
        tx = self.client.transactions.transact(builder)

        self.assertEqual(tx.id, "tx1")
        self.assertEqual([a.type for a in tx.actions], ["issue", "transfer"])
        body = self.ledger.bodies("transact")[0]
        self.assertEqual(body["transaction_tags"], {"batch": 1})
        self.assertEqual(
            body["actions"][0],
            {
                "type": "issue",
                "amount": 100,
                "flavor_id": "usd",
                "destination_account_id": "alice",
                "token_tags": {},
                "action_tags": {},
            },
        )
        self.assertNotIn("filter", body["actions"][1])

    def test_transact_requires_actions(self):
        """transact() with an empty builder should raise locally."""
        with self.assertRaises(ConfigurationError):
            self.client.transactions.transact(TransactionBuilder())

    def test_indexes(self):
        """indexes.create() and delete() should send the expected bodies."""
        self.route("create-index", lambda body: body)
        self.route("delete-index", json_response(204))
        index = self.client.indexes.create(type="token", filter="tags.type=$1")
        self.assertEqual(index.group_by, [])
        self.client.indexes.delete(id="i1")
        self.assertEqual(self.ledger.bodies("delete-index"), [{"id": "i1"}])
        with self.assertRaises(ConfigurationError):
            self.client.indexes.create(type="token", filter="")

    def test_feeds_list(self):
        """feeds.list() should not open a connection per feed."""
        self.client.feeds.create(type="action", id="f1")
        self.route("list-feeds", lambda body: {"items": list(self.ledger.feeds.values()), "last_page": True})
        feeds = list(self.client.feeds.list())
        self.assertEqual([f.id for f in feeds], ["f1"])
        self.assertIsNone(feeds[0]._consume_session)

    def test_stats(self):
        """stats.get() should return Stats."""
        self.route("stats", {"flavor_count": 1, "account_count": 2, "tx_count": 3, "ledger_type": "dev"})
        self.assertEqual(self.client.stats.get().account_count, 2)

    def test_dev_utils_reset(self):
        """dev_utils.reset() should post to the reset endpoint."""
        self.route("reset", json_response(204))
        self.client.dev_utils.reset()
        self.assertEqual(self.ledger.requests[-1].url.path, "/acme/test/reset")


class TestErrors(ClientTestCase):
    def test_api_error_message(self):
        """APIError should format code, message, detail and request id."""
        self.route("stats", json_response(
            400,
            {"message": "Invalid filter", "seq_code": "SEQ008", "detail": "near $2", "retriable": False},
            request_id="r-42",
        ))
        with self.assertRaises(APIError) as ctx:
            self.client.stats.get()
        self.assertEqual(
            str(ctx.exception),
            "Code: SEQ008 Message: Invalid filter Detail: near $2 Request-ID: r-42",
        )
        self.assertEqual(ctx.exception.chain_message, "Invalid filter")
        self.assertFalse(ctx.exception.is_retryable())

    def test_message_without_code_or_detail(self):
        """Blank code and detail should be left out of the message."""
        self.assertEqual(
            APIError.format_error_message(None, "boom", "", "r1"),
            "Message: boom Request-ID: r1",
        )

    def test_unauthorized(self):
        """A 401 should raise UnauthorizedError."""
        self.route("stats", json_response(401, {"message": "Unauthorized"}))
        with self.assertRaises(UnauthorizedError):
            self.client.stats.get()

    def test_api_error_without_response(self):
        """APIError without a response should have no status or request id."""
        error = APIError({"message": "m"})
        self.assertIsNone(error.status)
        self.assertIsNone(error.request_id)


class TestLogging(unittest.TestCase):
    """Tests for configure_logging() and retry logging."""

    def tearDown(self):
        logger = logging.getLogger(LOGGER_NAME)
        for handler in list(logger.handlers):
            if not isinstance(handler, logging.NullHandler):
                logger.removeHandler(handler)
        logger.propagate = True
        logger.setLevel(logging.NOTSET)

    def test_configure_logging_replaces_handlers(self):
        """configure_logging() should keep a single output handler."""
        configure_logging("DEBUG")
        logger = configure_logging("WARNING", json_format=True)
        self.assertEqual(logger.name, LOGGER_NAME)
        outputs = [h for h in logger.handlers if not isinstance(h, logging.NullHandler)]
        self.assertEqual(len(outputs), 1)
        self.assertIsInstance(outputs[0].formatter, JsonFormatter)
        self.assertEqual(logger.level, logging.WARNING)
        self.assertFalse(logger.propagate)

    def test_json_formatter_includes_extra_fields(self):
        """JsonFormatter should emit valid JSON carrying extra fields."""
        record = logging.LogRecord(
            "sequence_client.transport", logging.DEBUG, __file__, 1,
            'POST %s "quoted"', ("/acme/test/stats",), None,
        )
        record.attempt_id = "ab12/2"

        entry = json.loads(JsonFormatter().format(record))

        self.assertEqual(entry["level"], "DEBUG")
        self.assertEqual(entry["logger"], "sequence_client.transport")
        self.assertEqual(entry["msg"], 'POST /acme/test/stats "quoted"')
        self.assertEqual(entry["attempt_id"], "ab12/2")
        self.assertNotIn("exc", entry)
        self.assertNotIn("args", entry)

    def test_retries_are_logged(self):
        """Each retry should be logged at WARNING."""
        ledger = FakeLedger()
        replies = [httpx.ConnectError("refused")]

        def stats(body):
            if replies:
                raise replies.pop()
            return {}

        ledger.routes["stats"] = stats
        with Client(
            ledger_name="test",
            credential="cred",
            http_transport=ledger.transport(),
            sleep=no_sleep,
        ) as client:
            with self.assertLogs("sequence_client.transport", level="WARNING") as logs:
                client.stats.get()
        self.assertIn("Retrying request", logs.output[0])


if __name__ == "__main__":
    unittest.main()
