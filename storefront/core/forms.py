# IDLE -select-> EDITING -cancel-> IDLE; submit passes through SUBMITTING.
# A failed submit keeps the values and the selection.

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from pydantic import BaseModel

from storefront.api.errors import StorefrontError

logger = logging.getLogger(__name__)

SaveFn = Callable[[Optional[int], Dict[str, Any]], Any]


class FormMode(str, Enum):
    IDLE = "idle"
    EDITING = "editing"
    SUBMITTING = "submitting"


class EntityForm:
    def __init__(self, fields: Sequence[str], failure_message: str) -> None:
        self.fields = tuple(fields)
        self.failure_message = failure_message
        self.values: Dict[str, Any] = self._blank()
        self.selected_id: Optional[int] = None
        self._submitting = False

    @property
    def mode(self) -> FormMode:
        if self._submitting:
            return FormMode.SUBMITTING
        if self.selected_id is not None:
            return FormMode.EDITING
        return FormMode.IDLE

    @property
    def is_editing(self) -> bool:
        return self.selected_id is not None

    def select(self, item: BaseModel) -> None:
        data = item.model_dump()
        self.selected_id = data["id"]
        self.values = {f: "" if data.get(f) is None else data[f] for f in self.fields}

    def cancel(self) -> None:
        self.selected_id = None
        self.values = self._blank()

    def submit(self, values: Dict[str, Any], save: SaveFn) -> Tuple[bool, str]:
        """Send the form: update when an item is selected, create otherwise."""
        if self._submitting:
            return False, "Already submitting"

        self.values = {f: values.get(f, "") for f in self.fields}
        self._submitting = True
        try:
            save(self.selected_id, dict(self.values))
        except StorefrontError as e:
            logger.info("Form submit failed (selected=%s): %s", self.selected_id, e)
            return False, e.user_message(self.failure_message)
        finally:
            self._submitting = False

        self.cancel()
        return True, "ok"

    def _blank(self) -> Dict[str, Any]:
        return {f: "" for f in self.fields}
