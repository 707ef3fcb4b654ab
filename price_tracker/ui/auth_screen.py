# price_tracker/ui/auth_screen.py

"""Branded sign-in / sign-up screen."""

import asyncio
import logging

from rich.markup import escape
from textual import on
from textual.app import ComposeResult
from textual.containers import Center, Horizontal, Vertical
from textual.message import Message
from textual.screen import Screen
from textual.widgets import Button, Footer, Input, Label, Static

from price_tracker.config.settings import Settings
from price_tracker.data.client import DataClient, DataClientError
from price_tracker.models.user import User

logger = logging.getLogger("price_tracker.ui.auth")


class AuthScreen(Screen[None]):
    """Email/password form; all account logic lives in the data client."""

    class SignedIn(Message):
        """A session was established."""

        def __init__(self, user: User) -> None:
            self.user = user
            super().__init__()

    def __init__(self, client: DataClient) -> None:
        super().__init__()
        self.client = client
        self.busy = False

    def compose(self) -> ComposeResult:
        with Center():
            with Vertical(id="auth_box"):
                yield Static(Settings.APP_TITLE, id="auth_title")
                yield Static(Settings.APP_TAGLINE, id="auth_tagline")
                yield Label("Email address")
                yield Input(placeholder="you@example.com", id="email")
                yield Label("Password")
                yield Input(placeholder="Your password", password=True, id="password")
                with Horizontal(id="auth_buttons"):
                    yield Button("Sign In", variant="primary", id="sign_in_btn")
                    yield Button("Sign Up", id="sign_up_btn")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#email", Input).focus()

    def _credentials(self) -> tuple[str, str] | None:
        email = self.query_one("#email", Input).value.strip()
        password = self.query_one("#password", Input).value
        if not email or not password:
            self.notify("Enter your email and password", severity="warning")
            return None
        return email, password

    async def sign_in(self) -> None:
        credentials = self._credentials()
        if credentials is None or self.busy:
            return
        self.busy = True
        try:
            user = await asyncio.to_thread(self.client.sign_in, *credentials)
        except DataClientError as exc:
            logger.warning("Sign-in failed: %s", exc)
            self.notify(escape(str(exc)), title="Error", severity="error")
            return
        finally:
            self.busy = False
        self.post_message(self.SignedIn(user))

    async def sign_up(self) -> None:
        credentials = self._credentials()
        if credentials is None or self.busy:
            return
        self.busy = True
        try:
            user = await asyncio.to_thread(self.client.sign_up, *credentials)
        except DataClientError as exc:
            logger.warning("Sign-up failed: %s", exc)
            self.notify(escape(str(exc)), title="Error", severity="error")
            return
        finally:
            self.busy = False
        if user is None:
            self.notify(
                "Check your email for the confirmation link",
                title="Account created",
            )
            return
        self.post_message(self.SignedIn(user))

    @on(Button.Pressed, "#sign_in_btn")
    async def _sign_in_pressed(self) -> None:
        await self.sign_in()

    @on(Input.Submitted)
    async def _enter_pressed(self) -> None:
        await self.sign_in()

    @on(Button.Pressed, "#sign_up_btn")
    async def _sign_up_pressed(self) -> None:
        await self.sign_up()
