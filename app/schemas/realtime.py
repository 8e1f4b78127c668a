from typing import Any
from pydantic import BaseModel

class RealtimeFrame(BaseModel):
    """Envelope for every frame on the realtime channel, in both directions."""
    event: str
    data: Any = None
