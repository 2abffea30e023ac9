from typing import Any, Dict

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class DeckModel(BaseModel):
    """
    Base class for every document model.

    Attributes are snake_case in Python and camelCase on the wire
    (``z_index`` <-> ``zIndex``); either spelling is accepted on input.
    """
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

    def to_wire(self) -> Dict[str, Any]:
        """Dump using camelCase keys, dropping unset optionals"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
