"""
Tool: Google OAuth Server
Purpose: Authorize Google API scopes for a user through a loopback redirect

Starts a local HTTP server, opens the browser on Google's consent page and
waits for the redirect carrying the authorization code. The code is
exchanged for tokens, which are stored under the user's key in a multi-user
token file.

The server is a small state machine:
    WAITING -> SUCCEEDED   code received and exchanged
    WAITING -> FAILED      consent denied or token exchange failed
    WAITING -> TIMED_OUT   no callback before the deadline
Only the first callback is processed; the server is closed on every exit
path. Requests that are not a callback are redirected to the consent page.

Note: http://localhost:<port> must be an authorized redirect URI of the
OAuth client in the Google Cloud Console.

Usage:
    python -m tools.google.oauth_server
    python -m tools.google.oauth_server --user kay
    python -m tools.google.oauth_server --scopes calendar,sheets --token-path ./tokens.json

Dependencies:
    - google-auth-oauthlib (pip install google-auth-oauthlib)
"""

from __future__ import annotations

import argparse
import getpass
import html
import http.server
import sys
import threading
import time
import urllib.parse
import webbrowser
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from tools.credentials import CredentialStore, GoogleCredentials, Provider, get_default_store
from tools.exceptions import CredentialsError
from tools.google.auth import (
    DEFAULT_TOKEN_PATH,
    SCOPE_MAP,
    authorization_url,
    build_flow,
    fetch_token,
    resolve_scopes,
    write_token,
)
from tools.logging_config import get_logger

logger = get_logger(__name__)


DEFAULT_HOST = "localhost"
DEFAULT_PORT = 4001
DEFAULT_TIMEOUT = 300
DEFAULT_SCOPES = ["gmail.readonly", "gmail.send", "drive.file", "drive.readonly"]


class CallbackState(str, Enum):
    WAITING = "waiting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class AuthorizationResult:
    state: CallbackState
    user: str
    token_path: Path
    token: dict[str, Any] | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is CallbackState.SUCCEEDED


def _page(title: str, body: str, color: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head><title>{title}</title></head>
<body style="font-family: system-ui, sans-serif; max-width: 600px; margin: 50px auto; padding: 20px;">
  <h1 style="color: {color};">{title}</h1>
  {body}
</body>
</html>
"""


class OAuthCallbackServer:
    """
    Loopback server that captures a single OAuth authorization callback.

    Args:
        flow: google_auth_oauthlib Flow; its redirect URI is set to the bound address on start
        token_path: Token file to store the result in
        user: Key the token is stored under
        port: Port to listen on (0 picks a free port)
        login_hint: Optional account hint for the consent page
        exchange: Callable turning (flow, code) into a token dict
        host: Interface to bind, also used in the redirect URI
    """

    def __init__(
        self,
        flow: Any,
        token_path: str | Path,
        user: str,
        port: int = DEFAULT_PORT,
        login_hint: str | None = None,
        exchange: Callable[[Any, str], dict[str, Any]] = fetch_token,
        host: str = DEFAULT_HOST,
    ):
        self.flow = flow
        self.token_path = Path(token_path).expanduser().resolve()
        self.user = user
        self.host = host
        self.requested_port = port
        self.login_hint = login_hint
        self._exchange = exchange
        self._lock = threading.Lock()
        self._server: http.server.HTTPServer | None = None
        self.state = CallbackState.WAITING
        self.token: dict[str, Any] | None = None
        self.error: str | None = None
        self._auth_url: str | None = None

    @property
    def port(self) -> int:
        if self._server is None:
            return self.requested_port
        return self._server.server_address[1]

    @property
    def redirect_uri(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def auth_url(self) -> str:
        if self._auth_url is None:
            self._auth_url = authorization_url(self.flow, self.login_hint)
        return self._auth_url

    def result(self) -> AuthorizationResult:
        return AuthorizationResult(self.state, self.user, self.token_path, self.token, self.error)

    # ---------------------------------------------------------------------
    # State transitions
    # ---------------------------------------------------------------------

    def handle_callback(self, path: str) -> tuple[int, dict[str, str], str]:
        """
        Process one request path and return (status, headers, body).

        Performs the WAITING -> SUCCEEDED/FAILED transition when the request
        carries a code or an error.
        """
        parsed = urllib.parse.urlparse(path)
        params = urllib.parse.parse_qs(parsed.query)
        is_callback = parsed.path == "/" and ("code" in params or "error" in params)

        with self._lock:
            if not is_callback:
                return 302, {"Location": self.auth_url}, ""

            if self.state is not CallbackState.WAITING:
                return 400, {}, _page("Already Processed", "<p>This authorization was already handled.</p>", "#6b7280")

            if "error" in params:
                self.error = params["error"][0]
                self.state = CallbackState.FAILED
                logger.error(f"Authorization denied: {self.error}")
                return 400, {}, _page("Authorization Denied", f"<p>{html.escape(self.error)}</p>", "#dc2626")

            code = params["code"][0]
            logger.info("Received authorization code, exchanging for tokens")
            try:
                token = self._exchange(self.flow, code)
                write_token(self.token_path, token, self.user)
            except Exception as e:
                self.error = str(e)
                self.state = CallbackState.FAILED
                logger.error(f"Token exchange failed: {e}")
                return 500, {}, _page(
                    "Authorization Failed",
                    f"<p>{html.escape(self.error)}</p><p>Check the terminal for details.</p>",
                    "#dc2626",
                )

            self.token = token
            self.state = CallbackState.SUCCEEDED
            logger.info(f"Tokens saved for user '{self.user}' to {self.token_path}")

            scopes = "".join(
                f"<li>{html.escape(s.rsplit('/', 1)[-1])}</li>"
                for s in (token.get("scope") or "").split()
            )
            body = (
                f"<p><strong>User:</strong> {html.escape(self.user)}</p>"
                f"<p><strong>Tokens saved to:</strong> <code>{html.escape(str(self.token_path))}</code></p>"
                f"<ul>{scopes}</ul>"
                "<p>You can close this window and return to your terminal.</p>"
            )
            return 200, {}, _page("Authorization Successful", body, "#16a34a")

    # ---------------------------------------------------------------------
    # Server lifecycle
    # ---------------------------------------------------------------------

    def _create_handler_class(self) -> type:
        owner = self

        class CallbackHandler(http.server.BaseHTTPRequestHandler):
            def log_message(self, format: str, *args: Any) -> None:
                logger.debug(format % args)

            def do_GET(self) -> None:
                status, headers, body = owner.handle_callback(self.path)
                self.send_response(status)
                for name, value in headers.items():
                    self.send_header(name, value)
                if body:
                    self.send_header("Content-Type", "text/html; charset=utf-8")
                self.end_headers()
                if body:
                    self.wfile.write(body.encode("utf-8"))

        return CallbackHandler

    def start(self) -> None:
        """Bind, then point the flow at the bound address (port 0 resolves here)."""
        self._server = http.server.HTTPServer((self.host, self.requested_port), self._create_handler_class())
        self._server.timeout = 1
        self.flow.redirect_uri = self.redirect_uri
        self._auth_url = None

    def wait(self, timeout: float = DEFAULT_TIMEOUT) -> AuthorizationResult:
        """Serve requests until a terminal state or the deadline; always shuts down."""
        if self._server is None:
            self.start()
        deadline = time.monotonic() + timeout
        try:
            while time.monotonic() < deadline:
                with self._lock:
                    if self.state is not CallbackState.WAITING:
                        break
                self._server.handle_request()
            with self._lock:
                if self.state is CallbackState.WAITING:
                    self.state = CallbackState.TIMED_OUT
                    self.error = f"No authorization callback within {timeout:g} seconds"
        finally:
            self.shutdown()
        return self.result()

    def shutdown(self) -> None:
        if self._server is not None:
            self._server.server_close()
            self._server = None


def run_authorization(
    scopes: list[str],
    token_path: str | Path,
    user: str,
    port: int = DEFAULT_PORT,
    timeout: float = DEFAULT_TIMEOUT,
    open_browser: bool = True,
    store: CredentialStore | None = None,
) -> AuthorizationResult:
    store = store or get_default_store()
    record: GoogleCredentials = store.get(Provider.GOOGLE)
    if not record.has_oauth:
        raise CredentialsError(
            "Google OAuth credentials not found. Set google.clientId and google.clientSecret "
            "in credentials.json or GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET"
        )

    flow = build_flow(
        scopes,
        record.client_id,
        record.client_secret,
        redirect_uri=f"http://{DEFAULT_HOST}:{port}",
    )
    login_hint = f"{user}@{record.domain}" if record.domain and user else None
    server = OAuthCallbackServer(flow, token_path, user, port=port, login_hint=login_hint)
    server.start()

    print("Google OAuth Authorization")
    print(f"Account: {login_hint or user}")
    print(f"Token path: {server.token_path}")
    print(f"Server: {server.redirect_uri}")
    print("Scopes requested:")
    for scope in scopes:
        print(f"  - {scope.rsplit('/', 1)[-1]}")
    print()

    if open_browser:
        try:
            webbrowser.open(server.auth_url)
        except webbrowser.Error as e:
            logger.warning(f"Could not open browser: {e}")
    print(f"If the browser does not open, visit:\n{server.auth_url}\n")
    print("Waiting for authorization...")

    return server.wait(timeout)


def main(argv: list[str] | None = None) -> int:
    from tools.logging_config import setup_logging

    setup_logging()
    parser = argparse.ArgumentParser(
        description="Google OAuth authorization server",
        epilog="Scope shortcuts: " + ", ".join(SCOPE_MAP),
    )
    parser.add_argument(
        "--scopes",
        default=",".join(DEFAULT_SCOPES),
        help="Comma-separated scopes (short names or full URLs)",
    )
    parser.add_argument(
        "--token-path",
        type=Path,
        default=DEFAULT_TOKEN_PATH,
        help=f"Token file (default: {DEFAULT_TOKEN_PATH})",
    )
    parser.add_argument("--user", help="User key for multi-user token storage (default: login name)")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"Local port (default: {DEFAULT_PORT})")
    parser.add_argument(
        "--timeout", type=float, default=DEFAULT_TIMEOUT, help="Seconds to wait for the callback"
    )
    parser.add_argument("--no-browser", action="store_true", help="Print the URL only")
    args = parser.parse_args(argv)

    user = (args.user or getpass.getuser()).lower()
    scopes = resolve_scopes(args.scopes.split(","))

    try:
        result = run_authorization(
            scopes,
            args.token_path,
            user,
            port=args.port,
            timeout=args.timeout,
            open_browser=not args.no_browser,
        )
    except CredentialsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: could not listen on port {args.port}: {e}", file=sys.stderr)
        return 1

    if result.succeeded:
        print(f"Authorization complete. Tokens saved for '{result.user}' to {result.token_path}")
        print(f"Has refresh token: {bool(result.token.get('refresh_token'))}")
        return 0

    print(f"Authorization {result.state.value}: {result.error}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
