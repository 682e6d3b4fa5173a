"""Application wiring for the rhyme worker smoke page."""

from __future__ import annotations

from concurrent.futures import Future
from typing import Optional

from rhyme_lines.config import Settings, get_settings
from rhyme_lines.core.errors import DictionaryLoadFailure
from rhyme_lines.utils.logging_config import configure_logging
from rhyme_lines.utils.observability import get_logger
from rhyme_lines.worker.client import RhymeWorkerClient
from rhyme_lines.worker.singleton import get_rhyme_client

from rhyme_lines.app.ui.gradio import create_interface


class RhymeLinesApp:
    """Facade bundling settings, the shared worker client and the UI."""

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        client: Optional[RhymeWorkerClient] = None,
    ) -> None:
        self.settings = settings or get_settings()
        configure_logging(self.settings.log_level)
        self._logger = get_logger(__name__).bind(component="app_facade")
        self.client = client or get_rhyme_client(settings=self.settings)

    def start(self) -> "Future[None]":
        """Kick off the dictionary load; failures only degrade suggestions."""

        future = self.client.init()
        future.add_done_callback(self._log_init_outcome)
        return future

    def _log_init_outcome(self, future: "Future[None]") -> None:
        error = future.exception()
        if error is None:
            self._logger.info("Rhyme dictionary ready", context=dict(self.client.db_info))
        elif isinstance(error, DictionaryLoadFailure):
            self._logger.warning(
                "Serving fallback suggestions",
                context={"error": str(error), "origin": self.settings.db_origin},
            )
        else:
            self._logger.error("Rhyme worker failed to start", context={"error": str(error)})

    def create_gradio_interface(self):
        return create_interface(self.client)

    def shutdown(self) -> None:
        self.client.terminate()


def main() -> None:
    app = RhymeLinesApp()
    app.start()
    interface = app.create_gradio_interface()
    try:
        interface.launch(
            server_name="0.0.0.0",
            server_port=7860,
            share=app.settings.share_interface,
        )
    finally:
        app.shutdown()


__all__ = ["RhymeLinesApp", "main"]
