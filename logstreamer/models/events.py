import json
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class SSEEvent(BaseModel):
    event: str
    data: Dict[str, Any] = Field(default_factory=dict)

    def format(self) -> str:
        payload = json.dumps(self.data, ensure_ascii=False)
        return f"event: {self.event}\ndata: {payload}\n\n"


class EmitRequest(BaseModel):
    stream: str = "stdout"
    message: str


class StreamConsumers(BaseModel):
    stream: str
    intercepted: bool
    consumers: List[str] = Field(default_factory=list)


class ConsumersResponse(BaseModel):
    items: List[StreamConsumers]
