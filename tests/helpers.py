"""Small helpers shared by the HTTP-level tests."""

from notekeeper.security.jwt import create_access_token


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}
