"""
GitHub OAuth handler

requests is blocking, so calls run in a worker thread off the event loop.
"""
import asyncio
import requests
from urllib.parse import urlencode
from docverctl.core.exceptions import UnauthorizedError, UpstreamError


class GitHubOAuth:
    """
    Handle GitHub OAuth authentication
    """

    def __init__(self, client_id: str, client_secret: str, scope: str):
        self.client_id = client_id
        self.client_secret = client_secret
        self.scope = scope
        self.authorize_url = "https://github.com/login/oauth/authorize"
        self.token_url = "https://github.com/login/oauth/access_token"
        self.user_api_url = "https://api.github.com/user"

    def get_authorization_url(self, redirect_uri: str = None, state: str = None) -> str:
        """Generate GitHub OAuth URL"""
        params = {"client_id": self.client_id, "scope": self.scope}
        if redirect_uri:
            params["redirect_uri"] = redirect_uri
        if state:
            params["state"] = state
        return f"{self.authorize_url}?{urlencode(params)}"

    async def exchange_code_for_token(self, code: str) -> str:
        """Exchange authorization code for access token"""

        try:
            response = await asyncio.to_thread(
                requests.post,
                self.token_url,
                headers={"Accept": "application/json"},
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "code": code,
                },
                timeout=10
            )
            response.raise_for_status()

            data = response.json()
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to communicate with GitHub: {str(e)}")

        access_token = data.get("access_token")
        if not access_token:
            error = data.get("error_description", "Unknown error")
            raise UnauthorizedError(f"GitHub OAuth failed: {error}")

        return access_token

    async def get_user_info(self, access_token: str) -> dict:
        """Get user info from GitHub"""
        try:
            response = await asyncio.to_thread(
                requests.get,
                self.user_api_url,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=10
            )
            response.raise_for_status()

            return response.json()

        except requests.RequestException as e:
            raise UpstreamError(f"Failed to fetch user info from GitHub: {str(e)}")
