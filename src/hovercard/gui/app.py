"""Main Qt application."""

import logging
import sys

from PySide6.QtWidgets import QApplication

from ..__version__ import __version__
from ..core.resolver import MetadataResolver
from ..core.settings import Settings
from ..messaging.service import MetadataService
from .window import PageWindow

logger = logging.getLogger(__name__)

DEFAULT_URLS = [
    "https://www.python.org/",
    "https://docs.python.org/3/library/asyncio.html",
    "https://github.com/",
    "https://en.wikipedia.org/wiki/Hyperlink",
]


class Application(QApplication):
    """Main application class."""

    def __init__(self, argv=None):
        super().__init__(argv or sys.argv)

        self.setApplicationName("HoverCard")
        self.setApplicationDisplayName("HoverCard")
        self.setApplicationVersion(__version__)

        self.settings: Settings | None = None
        self.service: MetadataService | None = None
        self.main_window: PageWindow | None = None

        self.aboutToQuit.connect(self.cleanup)

    def initialize(self, urls: list[str]) -> None:
        """Load settings, start the metadata service and open the page."""
        self.settings = Settings.load()

        resolver = MetadataResolver.from_settings(self.settings)
        self.service = MetadataService(resolver)
        self.service.start()

        self.main_window = PageWindow(self.service, self.settings, urls or DEFAULT_URLS)
        self.main_window.show()
        logger.info(f"HoverCard {__version__} started with {len(urls or DEFAULT_URLS)} link(s)")

    def cleanup(self) -> None:
        """Stop the service and persist settings."""
        if self.service is not None:
            self.service.stop()
            self.service = None
        if self.settings is not None:
            try:
                self.settings.save()
            except OSError as e:
                logger.error(f"Failed to save settings: {e}")


def run(urls: list[str] | None = None) -> int:
    """Run the application."""
    app = Application(sys.argv[:1])
    app.initialize(urls or [])
    return app.exec()
