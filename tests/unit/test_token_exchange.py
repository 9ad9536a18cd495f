"""Unit tests for meetingbot.auth.token_exchange."""

from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from meetingbot.auth.token_exchange import JWT_BEARER_GRANT_TYPE, TokenExchangeClient
from meetingbot.exceptions import TokenExchangeError
from meetingbot.models import AccessToken

from ..helpers import TOKEN_URL

pytestmark = pytest.mark.unit


def _response(status: int, **kwargs) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", TOKEN_URL), **kwargs)


def _client(*outcomes) -> Mock:
    client = Mock()
    client.request = AsyncMock(side_effect=list(outcomes))
    return client


@pytest.fixture(autouse=True)
def no_backoff_sleep():
    with patch("meetingbot.core.http_client.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


class TestTokenExchangeClient:
    """Tests for TokenExchangeClient.exchange."""

    async def test_exchange_when_success_then_returns_access_token(self):
        client = _client(_response(200, json={"access_token": "ya29.token", "expires_in": 3599}))
        exchanger = TokenExchangeClient(client, timeout=7.0)

        token = await exchanger.exchange("a.b.c", TOKEN_URL)

        assert token == AccessToken(value="ya29.token")
        client.request.assert_awaited_once()
        args, kwargs = client.request.call_args
        assert args == ("POST", TOKEN_URL)
        assert kwargs["data"] == {"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": "a.b.c"}
        assert kwargs["timeout"] == 7.0

    async def test_exchange_when_grant_type_then_exact_urn(self):
        assert JWT_BEARER_GRANT_TYPE == "urn:ietf:params:oauth:grant-type:jwt-bearer"

    async def test_exchange_when_invalid_grant_then_raises_with_status_and_detail(self):
        client = _client(
            _response(400, json={"error": "invalid_grant", "error_description": "Invalid JWT"})
        )

        with pytest.raises(TokenExchangeError, match="Invalid JWT") as exc_info:
            await TokenExchangeClient(client).exchange("a.b.c", TOKEN_URL)

        assert exc_info.value.status_code == 400
        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)

    async def test_exchange_when_error_body_not_json_then_reason_phrase_used(self):
        client = _client(_response(401, text="nope"))

        with pytest.raises(TokenExchangeError, match="HTTP 401: Unauthorized"):
            await TokenExchangeClient(client).exchange("a.b.c", TOKEN_URL)

    async def test_exchange_when_body_not_json_then_raises(self):
        client = _client(_response(200, text="<html>oops</html>"))

        with pytest.raises(TokenExchangeError, match="non-JSON"):
            await TokenExchangeClient(client).exchange("a.b.c", TOKEN_URL)

    @pytest.mark.parametrize(
        "body",
        [{}, {"access_token": ""}, {"access_token": None}, {"token_type": "Bearer"}, ["x"]],
    )
    async def test_exchange_when_access_token_missing_then_raises(self, body):
        client = _client(_response(200, json=body))

        with pytest.raises(TokenExchangeError, match="no access_token"):
            await TokenExchangeClient(client).exchange("a.b.c", TOKEN_URL)

    async def test_exchange_when_network_fails_then_raises_after_retries(self):
        client = _client(*[httpx.ConnectError("refused")] * 3)

        with pytest.raises(TokenExchangeError, match="Token request failed") as exc_info:
            await TokenExchangeClient(client, max_retries=2).exchange("a.b.c", TOKEN_URL)

        assert exc_info.value.status_code is None
        assert client.request.await_count == 3

    async def test_exchange_when_transient_503_then_retried(self):
        client = _client(_response(503), _response(200, json={"access_token": "t"}))

        token = await TokenExchangeClient(client, max_retries=1).exchange("a.b.c", TOKEN_URL)

        assert token.value == "t"
        assert client.request.await_count == 2
