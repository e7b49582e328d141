"""Tests for the homebanking client and file-based login session."""

# ruff: noqa: S101

import json
from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest
import requests
from pytest_mock import MockerFixture

from ledgerbridge.config import SourceConfig
from ledgerbridge.connectors.homebank import (
    HomebankClient,
    SessionFileLogin,
    has_session_cookie,
    parse_accounts,
    parse_movements,
    read_session_cookies,
)
from ledgerbridge.errors import SessionExpiredError, SourceFetchError
from ledgerbridge.sync.service import SyncService


def write_state(path: Path, cookies: list[dict[str, Any]]) -> None:
    path.write_text(json.dumps({"cookies": cookies}), encoding="utf-8")


def make_response(status_code: int = 200, payload: Any = None) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = payload
    return response


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "browser-state.json"


@pytest.fixture
def client(state_path: Path) -> HomebankClient:
    return HomebankClient(
        SourceConfig(base_url="https://bank.example/", session_state_path=state_path)
    )


@pytest.fixture
def logged_in(state_path: Path) -> Path:
    write_state(
        state_path,
        [{"name": "SESSION", "value": "abc", "domain": "bank.example", "path": "/"}],
    )
    return state_path


@pytest.mark.unit
class TestSessionState:
    def test_missing_file(self, state_path: Path) -> None:
        assert read_session_cookies(state_path) == []
        assert not has_session_cookie(state_path)

    def test_malformed_file(self, state_path: Path) -> None:
        state_path.write_text("{not json", encoding="utf-8")

        assert read_session_cookies(state_path) == []

    def test_session_cookie_detected(self, logged_in: Path) -> None:
        assert has_session_cookie(logged_in)

    def test_other_cookies_only(self, state_path: Path) -> None:
        write_state(state_path, [{"name": "tracking", "value": "x"}])

        assert not has_session_cookie(state_path)


@pytest.mark.unit
class TestParsing:
    def test_parse_accounts(self) -> None:
        accounts = parse_accounts(
            {"accounts": [{"id": "1", "iban": "BE01", "alias": None}, {"id": "2"}]}
        )

        assert [a.id for a in accounts] == ["1", "2"]
        assert accounts[0].alias == "Unknown"
        assert accounts[1].iban == ""

    def test_parse_accounts_without_list(self) -> None:
        assert parse_accounts({}) == []

    def test_parse_movements(self) -> None:
        page = parse_movements(
            {
                "rowCount": 42,
                "result": [
                    {
                        "identifier": "m1",
                        "accountingDate": "20260218",
                        "movementAmount": "12.30",
                        "movementSign": "-",
                        "counterpartyName": None,
                        "somethingNew": True,
                    }
                ],
            }
        )

        assert page.total_count == 42
        assert page.movements[0].identifier == "m1"
        assert page.movements[0].counterparty_name == ""

    def test_parse_movements_missing_identifier(self) -> None:
        with pytest.raises(SourceFetchError, match="Malformed movements payload"):
            parse_movements({"rowCount": 1, "result": [{"accountingDate": "20260218"}]})

    def test_parse_movements_not_an_object(self) -> None:
        with pytest.raises(SourceFetchError):
            parse_movements([])


@pytest.mark.unit
class TestHomebankClient:
    def test_login_url(self, client: HomebankClient) -> None:
        assert client.login_url == "https://bank.example/webapp/nl/aanmelden"

    def test_no_session_state(self, client: HomebankClient) -> None:
        assert not client.is_session_valid()
        assert not client.validate_session()
        with pytest.raises(SessionExpiredError):
            client.fetch_accounts()

    def test_fetch_movements_sends_paging_params(
        self, client: HomebankClient, logged_in: Path, mocker: MockerFixture
    ) -> None:
        get = mocker.patch(
            "ledgerbridge.connectors.homebank.requests.Session.get",
            return_value=make_response(200, {"rowCount": 0, "result": []}),
        )

        page = client.fetch_movements("BE01", start=200, max_results=200)

        assert page.total_count == 0
        get.assert_called_once_with(
            "https://bank.example/accounts/accountingmovements",
            params={"accountNumber": "BE01", "start": 200, "maxResults": 200},
            timeout=30.0,
        )

    def test_unauthorized_means_expired(
        self, client: HomebankClient, logged_in: Path, mocker: MockerFixture
    ) -> None:
        mocker.patch(
            "ledgerbridge.connectors.homebank.requests.Session.get",
            return_value=make_response(401),
        )

        with pytest.raises(SessionExpiredError, match="Session expired"):
            client.fetch_movements("BE01")

    def test_server_error(
        self, client: HomebankClient, logged_in: Path, mocker: MockerFixture
    ) -> None:
        mocker.patch(
            "ledgerbridge.connectors.homebank.requests.Session.get",
            return_value=make_response(503),
        )

        with pytest.raises(SourceFetchError, match="API error: 503") as exc_info:
            client.fetch_movements("BE01")
        assert exc_info.value.status_code == 503

    def test_transport_error(
        self, client: HomebankClient, logged_in: Path, mocker: MockerFixture
    ) -> None:
        mocker.patch(
            "ledgerbridge.connectors.homebank.requests.Session.get",
            side_effect=requests.ConnectionError("refused"),
        )

        with pytest.raises(SourceFetchError):
            client.fetch_accounts()
        assert not client.validate_session()

    def test_invalid_json(
        self, client: HomebankClient, logged_in: Path, mocker: MockerFixture
    ) -> None:
        response = make_response(200)
        response.json.side_effect = ValueError("no json")
        mocker.patch(
            "ledgerbridge.connectors.homebank.requests.Session.get",
            return_value=response,
        )

        with pytest.raises(SourceFetchError, match="Invalid JSON"):
            client.fetch_accounts()

    def test_cookies_are_replayed(
        self, client: HomebankClient, logged_in: Path
    ) -> None:
        session = client._open_session()

        assert session.cookies.get("SESSION", domain="bank.example") == "abc"


@pytest.mark.unit
class TestSessionFileLogin:
    def test_poll_before_start(self, client: HomebankClient) -> None:
        with pytest.raises(RuntimeError):
            SessionFileLogin(client).poll()

    def test_poll_without_cookie(self, client: HomebankClient) -> None:
        login = SessionFileLogin(client)
        login.start()

        assert login.poll() is None

    def test_poll_with_valid_session(
        self, client: HomebankClient, logged_in: Path, mocker: MockerFixture
    ) -> None:
        mocker.patch(
            "ledgerbridge.connectors.homebank.requests.Session.get",
            return_value=make_response(200, {"accounts": [{"id": "1", "iban": "BE01"}]}),
        )
        login = SessionFileLogin(client)
        login.start()

        accounts = login.poll()

        assert accounts is not None
        assert accounts[0].iban == "BE01"

    def test_poll_with_rejected_cookie(
        self, client: HomebankClient, logged_in: Path, mocker: MockerFixture
    ) -> None:
        mocker.patch(
            "ledgerbridge.connectors.homebank.requests.Session.get",
            return_value=make_response(401),
        )
        login = SessionFileLogin(client)
        login.start()

        assert login.poll() is None

    def test_poll_keeps_waiting_on_http_errors(
        self, client: HomebankClient, logged_in: Path, mocker: MockerFixture
    ) -> None:
        mocker.patch(
            "ledgerbridge.connectors.homebank.requests.Session.get",
            side_effect=[
                make_response(403),
                make_response(503),
                make_response(200, {"accounts": [{"id": "1", "iban": "BE01"}]}),
            ],
        )
        login = SessionFileLogin(client)
        login.start()

        assert login.poll() is None
        assert login.poll() is None
        assert [a.id for a in login.poll()] == ["1"]

    def test_poll_raises_on_transport_error(
        self, client: HomebankClient, logged_in: Path, mocker: MockerFixture
    ) -> None:
        mocker.patch(
            "ledgerbridge.connectors.homebank.requests.Session.get",
            side_effect=requests.ConnectionError("refused"),
        )
        login = SessionFileLogin(client)
        login.start()

        with pytest.raises(SourceFetchError):
            login.poll()

    def test_login_succeeds_after_forbidden_reply(
        self,
        client: HomebankClient,
        logged_in: Path,
        mocker: MockerFixture,
        fake_ledger,
        account_repo,
        config_repo,
        fake_clock,
    ) -> None:
        mocker.patch(
            "ledgerbridge.connectors.homebank.requests.Session.get",
            side_effect=[
                make_response(403),
                make_response(200, {"accounts": [{"id": "1", "iban": "BE01"}]}),
            ],
        )
        login = SessionFileLogin(client)
        service = SyncService(
            source=client,
            ledger=fake_ledger,
            accounts=account_repo,
            config_store=config_repo,
            login_session=login,
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )

        result = service.start_login(timeout=60, poll_interval=5)

        assert result.success
        assert account_repo.find_by_id("1").iban == "BE01"
        assert fake_clock.sleeps == [5]
        assert not login.active

    def test_close_is_idempotent(self, client: HomebankClient) -> None:
        login = SessionFileLogin(client)
        login.start()

        login.close()
        login.close()

        assert not login.active
