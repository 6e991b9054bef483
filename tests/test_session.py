import pytest
from pydantic import ValidationError

from nimbus_reports.session import AuthMode, Session


def test_credential_headers():
    session = Session(base_url="https://n.test/", user_id=5, auth_token="abc")

    assert session.headers() == {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "UserID": "5",
        "Authorization": "Bearer abc",
        "AuthenticationToken": "abc",
    }
    assert session.secret == "abc"
    assert session.odata_base == "https://n.test/CoreAPI/Odata"


def test_app_token_headers():
    session = Session(
        base_url="https://n.test", auth_mode=AuthMode.APP_TOKEN, app_token="app", username="svc"
    )

    headers = session.headers()

    assert headers["AppToken"] == "app"
    assert headers["Username"] == "svc"
    assert headers["Authorization"] == "Bearer app"
    assert "UserID" not in headers
    assert session.secret == "app"


@pytest.mark.parametrize(
    "kwargs, complete",
    [
        ({"user_id": 1, "auth_token": "t"}, True),
        ({"user_id": 1}, False),
        ({"auth_token": "t"}, False),
        ({"auth_mode": "apptoken", "app_token": "a", "username": "u"}, True),
        ({"auth_mode": "apptoken", "app_token": "a"}, False),
        ({"auth_mode": "apptoken", "user_id": 1, "auth_token": "t"}, False),
    ],
)
def test_is_complete(kwargs, complete):
    assert Session(base_url="https://n.test", **kwargs).is_complete() is complete


def test_blank_base_url_is_incomplete():
    assert not Session(base_url="", user_id=1, auth_token="t").is_complete()


def test_session_is_immutable():
    session = Session(base_url="https://n.test", user_id=1, auth_token="t")

    with pytest.raises(ValidationError):
        session.auth_token = "other"


def test_app_token_hidden_from_repr():
    session = Session(base_url="https://n.test", auth_mode="apptoken", app_token="hidden", username="u")

    assert "hidden" not in repr(session)
