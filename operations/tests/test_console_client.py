"""
Console HTTP client against a scripted session: bearer header, the single
refresh-and-retry on 401, forced logout and error messages.
"""
import pytest
import requests

from operations.console.client import (
    GENERIC_ERROR,
    RATE_LIMITED,
    SESSION_EXPIRED,
    ApiError,
    DashboardClient,
    TokenStore,
    error_message,
)


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError('empty body')
        return self._payload


class ScriptedSession:
    """Answers requests from a queue and records what was sent."""

    def __init__(self, responses=(), refresh_responses=()):
        self.responses = list(responses)
        self.refresh_responses = list(refresh_responses)
        self.calls = []
        self.refresh_calls = []

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        self.calls.append({'method': method, 'url': url, 'headers': dict(headers or {}), **kwargs})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def post(self, url, json=None, timeout=None):
        self.refresh_calls.append({'url': url, 'json': json})
        return self.refresh_responses.pop(0)


@pytest.fixture
def logouts():
    return []


def make_client(session, logouts, token='access-1', refresh='refresh-1'):
    return DashboardClient('http://dash.test/api/', tokens=TokenStore(token, refresh), session=session,
                           on_logout=lambda: logouts.append(True))


def test_bearer_header_and_url_joining(logouts):
    session = ScriptedSession([FakeResponse(200, {'ok': True, 'beds': []})])
    client = make_client(session, logouts)
    assert client.get('/beds') == {'ok': True, 'beds': []}
    call = session.calls[0]
    assert call['url'] == 'http://dash.test/api/beds'
    assert call['headers']['Authorization'] == 'Bearer access-1'


def test_401_refreshes_once_and_retries(logouts):
    session = ScriptedSession(
        [FakeResponse(401, {'detail': 'expired'}), FakeResponse(200, {'ok': True})],
        [FakeResponse(200, {'ok': True, 'token': 'access-2', 'refreshToken': 'refresh-2'})],
    )
    client = make_client(session, logouts)
    assert client.get('/patients') == {'ok': True}
    assert session.refresh_calls == [{'url': 'http://dash.test/api/auth/refresh-token',
                                      'json': {'refreshToken': 'refresh-1'}}]
    assert session.calls[1]['headers']['Authorization'] == 'Bearer access-2'
    assert client.tokens.refresh_token == 'refresh-2'
    assert logouts == []


def test_refresh_response_nested_under_data(logouts):
    session = ScriptedSession(
        [FakeResponse(401), FakeResponse(200, {'ok': True})],
        [FakeResponse(200, {'data': {'token': 'access-3'}})],
    )
    client = make_client(session, logouts)
    client.get('/patients')
    assert client.tokens.token == 'access-3'
    assert client.tokens.refresh_token == 'refresh-1'


def test_second_401_logs_out_without_another_refresh(logouts):
    session = ScriptedSession(
        [FakeResponse(401), FakeResponse(401)],
        [FakeResponse(200, {'token': 'access-2', 'refreshToken': 'refresh-2'})],
    )
    client = make_client(session, logouts)
    with pytest.raises(ApiError) as err:
        client.get('/patients')
    assert err.value.status == 401
    assert err.value.message == SESSION_EXPIRED
    assert len(session.refresh_calls) == 1
    assert len(session.calls) == 2
    assert logouts == [True]
    assert client.tokens.token is None and client.tokens.refresh_token is None


def test_failed_refresh_logs_out(logouts):
    session = ScriptedSession([FakeResponse(401)], [FakeResponse(401, {'detail': 'blacklisted'})])
    client = make_client(session, logouts)
    with pytest.raises(ApiError):
        client.get('/patients')
    assert len(session.calls) == 1
    assert logouts == [True]


def test_missing_refresh_token_logs_out_without_calling_refresh(logouts):
    session = ScriptedSession([FakeResponse(401)])
    client = make_client(session, logouts, refresh=None)
    with pytest.raises(ApiError):
        client.get('/patients')
    assert session.refresh_calls == []
    assert logouts == [True]


def test_429_is_not_retried(logouts):
    session = ScriptedSession([FakeResponse(429, {'detail': 'Request was throttled.'})])
    client = make_client(session, logouts)
    with pytest.raises(ApiError) as err:
        client.post('/ai/diagnose', data={'symptoms': 'cough'})
    assert err.value.status == 429
    assert err.value.message == 'Request was throttled.'
    assert len(session.calls) == 1
    assert session.refresh_calls == []


def test_server_error_message_is_surfaced(logouts):
    session = ScriptedSession([FakeResponse(409, {'ok': False, 'error': {
        'code': 'conflict', 'message': 'This time slot is already booked'}})])
    client = make_client(session, logouts)
    with pytest.raises(ApiError) as err:
        client.post('/appointments/doctor-book', json={})
    assert err.value.message == 'This time slot is already booked'
    assert err.value.code == 'conflict'
    assert err.value.status == 409


def test_network_failure_becomes_api_error(logouts):
    session = ScriptedSession([requests.ConnectionError('refused')])
    client = make_client(session, logouts)
    with pytest.raises(ApiError) as err:
        client.get('/beds')
    assert err.value.status is None
    assert 'Unable to reach the server' in err.value.message


def test_login_stores_tokens_without_sending_auth(logouts):
    session = ScriptedSession([FakeResponse(200, {'ok': True, 'token': 'a', 'refreshToken': 'r',
                                                  'user': {'role': 'doctor'}})])
    client = make_client(session, logouts, token=None, refresh=None)
    client.login('dr.sharma', 'secret')
    assert 'Authorization' not in session.calls[0]['headers']
    assert (client.tokens.token, client.tokens.refresh_token) == ('a', 'r')


def test_logout_clears_tokens_even_if_server_refuses(logouts):
    session = ScriptedSession([FakeResponse(401)])
    client = make_client(session, logouts)
    client.logout()
    assert session.calls[0]['json'] == {'refreshToken': 'refresh-1'}
    assert session.refresh_calls == []
    assert client.tokens.token is None
    assert logouts == [True]


def test_error_message_fallbacks():
    assert error_message({'error': {'message': 'Bed not available'}}) == 'Bed not available'
    assert error_message({'error': 'plain'}) == 'plain'
    assert error_message({'message': 'm'}) == 'm'
    assert error_message(None) == GENERIC_ERROR
    assert error_message({}, RATE_LIMITED) == RATE_LIMITED
