from typing import List, Optional

from pydantic import BaseModel, Field


class Part(BaseModel):
    text: str


class Content(BaseModel):
    parts: List[Part]


class GenerateContentRequest(BaseModel):
    """Body accepted by the ``models/{model}:generateContent`` endpoint."""
    contents: List[Content]

    @classmethod
    def from_prompt(cls, prompt: str) -> "GenerateContentRequest":
        return cls(contents=[Content(parts=[Part(text=prompt)])])


class GenerationResult(BaseModel):
    """Outcome of one generate call; non-200 statuses are data, not errors."""
    model: str
    status_code: int
    text: Optional[str] = Field(default=None, description="First candidate's text, if any")
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status_code == 200 and bool(self.text)
