"""Status selector bound to one application.

Holds local state mirroring the application's status. Selecting a value
pushes it to the server; on success the local value becomes whatever the
server confirmed, on failure the previous value stays and an error flash is
shown. Nothing is retried.
"""
from __future__ import annotations

from typing import Any, List, Optional

from portal.models.enums import ApplicationStatus
from portal.utils import get_logger
from .actions import (
    clear_flash_messages,
    send_error_message,
    send_success_message,
    update_application_status,
)
from .api import ApiClient, err
from .store import Store

logger = get_logger(__name__)

SUCCESS_MESSAGE = "Successfully updated application status!"


class StatusSelector:
    def __init__(self, application: dict, store: Store, api: Optional[ApiClient] = None):
        self.application = application
        self.store = store
        self.api = api if api is not None else store.extra
        self.state = {
            "loading": False,
            "status": application.get("status"),
        }

    @property
    def options(self) -> List[str]:
        return ApplicationStatus.values()

    @property
    def value(self) -> Optional[str]:
        return self.state["status"]

    def _flash_error(self, message: str) -> None:
        self.store.dispatch(send_error_message(message))

    async def on_select(self, status: Any) -> Optional[dict]:
        if isinstance(status, ApplicationStatus):
            status = status.value
        if not ApplicationStatus.is_valid(status):
            self._flash_error(f"Invalid status '{status}'. Choose one of: {', '.join(self.options)}")
            return None

        application_id = self.application["id"]
        self.store.dispatch(clear_flash_messages())
        self.state["loading"] = True
        try:
            updated = await update_application_status(self.api, application_id, status)
        except Exception as error:
            logger.warning(
                "Application status update failed",
                application_id=application_id,
                requested_status=status,
                error=err(error),
            )
            self._flash_error(err(error))
            return None
        finally:
            self.state["loading"] = False

        confirmed = updated.get("status", status) if isinstance(updated, dict) else status
        self.state["status"] = confirmed
        self.application = {**self.application, **updated} if isinstance(updated, dict) else self.application
        self.store.dispatch(send_success_message(SUCCESS_MESSAGE))
        return updated


__all__ = ["StatusSelector", "SUCCESS_MESSAGE"]
