from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict


class InputMethod(str, Enum):
    PASTE = "paste"
    SCRAPE = "scrape"


class Job(BaseModel):
    """A persisted repurposing request; written once, never updated."""
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    input_text: str
    input_method: InputMethod = InputMethod.PASTE
    brand_voice: str = "professional"
    selected_formats: List[str]
    outputs: Dict[str, str]
    provider: Optional[str] = None
    created_at: datetime
