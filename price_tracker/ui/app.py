# price_tracker/ui/app.py

"""Terminal UI for the price tracker."""

import asyncio
import logging

from textual import on
from textual.app import App
from textual.binding import Binding

from price_tracker.config.settings import Settings
from price_tracker.data.client import DataClient
from price_tracker.data.factory import create_client
from price_tracker.ui.auth_screen import AuthScreen
from price_tracker.ui.dashboard import DashboardScreen
from price_tracker.ui.product_card import ImageLoaderFn

logger = logging.getLogger("price_tracker.ui")


class PriceTrackerApp(App[object]):
    """Shows the auth screen or the dashboard depending on the session."""

    CSS_PATH = "styles.tcss"
    TITLE = Settings.APP_TITLE

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit"),
    ]

    def __init__(
        self,
        client: DataClient | None = None,
        image_loader: ImageLoaderFn | None = None,
    ) -> None:
        super().__init__()
        self._owns_client = client is None
        self.client = client if client is not None else create_client()
        self.image_loader = image_loader

    async def on_mount(self) -> None:
        user = await asyncio.to_thread(self.client.get_current_user)
        if user is None:
            await self.push_screen(AuthScreen(self.client))
        else:
            logger.info("Resuming session for %s", user.email or user.id)
            await self.push_screen(self._dashboard())

    def _dashboard(self) -> DashboardScreen:
        return DashboardScreen(self.client, image_loader=self.image_loader)

    @on(AuthScreen.SignedIn)
    def _signed_in(self, message: AuthScreen.SignedIn) -> None:
        logger.info("Signed in as %s", message.user.email or message.user.id)
        self.switch_screen(self._dashboard())

    @on(DashboardScreen.SignedOut)
    def _signed_out(self) -> None:
        logger.info("Signed out, returning to auth screen")
        self.switch_screen(AuthScreen(self.client))

    def on_unmount(self) -> None:
        if self._owns_client:
            self.client.close()
