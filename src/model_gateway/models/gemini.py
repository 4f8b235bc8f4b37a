"""
Gemini generateContent models.

Gemini's wire format is camelCase; fields are declared snake_case with
aliases and serialized with ``by_alias=True``.
"""

from typing import Optional, List, Dict, Any, Literal
from pydantic import BaseModel, Field, model_validator


FinishReason = Literal["STOP", "MAX_TOKENS", "SAFETY", "OTHER"]


class GeminiFunctionCall(BaseModel):
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)


class GeminiFunctionResponse(BaseModel):
    name: str
    response: Dict[str, Any] = Field(default_factory=dict)


class GeminiPart(BaseModel):
    """
    One unit of content.

    A part carries at most one of text, a function call or a function
    response. Parts carrying none of them (e.g. executable code) are
    tolerated on responses and ignored by the transformers.
    """
    text: Optional[str] = None
    function_call: Optional[GeminiFunctionCall] = Field(default=None, alias="functionCall")
    function_response: Optional[GeminiFunctionResponse] = Field(
        default=None, alias="functionResponse"
    )

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def _single_payload(self) -> "GeminiPart":
        present = [
            v for v in (self.text, self.function_call, self.function_response)
            if v is not None
        ]
        if len(present) > 1:
            raise ValueError("a part carries exactly one of text, functionCall, functionResponse")
        return self


class GeminiContent(BaseModel):
    role: Literal["user", "model"] = "model"
    parts: List[GeminiPart] = Field(default_factory=list)


class GeminiSystemInstruction(BaseModel):
    parts: List[GeminiPart]


class GeminiFunctionDeclaration(BaseModel):
    name: str
    description: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None


class GeminiTool(BaseModel):
    function_declarations: List[GeminiFunctionDeclaration] = Field(
        default_factory=list, alias="functionDeclarations"
    )

    class Config:
        populate_by_name = True


class GeminiGenerationConfig(BaseModel):
    max_output_tokens: Optional[int] = Field(default=None, alias="maxOutputTokens")
    temperature: Optional[float] = None
    top_p: Optional[float] = Field(default=None, alias="topP")
    top_k: Optional[int] = Field(default=None, alias="topK")

    class Config:
        populate_by_name = True


class GeminiRequest(BaseModel):
    """generateContent request body."""
    contents: List[GeminiContent] = Field(default_factory=list)
    system_instruction: Optional[GeminiSystemInstruction] = Field(
        default=None, alias="systemInstruction"
    )
    tools: Optional[List[GeminiTool]] = None
    generation_config: Optional[GeminiGenerationConfig] = Field(
        default=None, alias="generationConfig"
    )

    class Config:
        populate_by_name = True

    def to_payload(self) -> Dict[str, Any]:
        """Wire payload (camelCase) with unset fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


class GeminiCandidate(BaseModel):
    content: GeminiContent = Field(default_factory=GeminiContent)
    finish_reason: Optional[str] = Field(default=None, alias="finishReason")

    class Config:
        populate_by_name = True


class GeminiUsageMetadata(BaseModel):
    prompt_token_count: int = Field(default=0, alias="promptTokenCount")
    candidates_token_count: int = Field(default=0, alias="candidatesTokenCount")
    total_token_count: int = Field(default=0, alias="totalTokenCount")

    class Config:
        populate_by_name = True


class GeminiResponse(BaseModel):
    """generateContent response body."""
    candidates: List[GeminiCandidate] = Field(default_factory=list)
    usage_metadata: GeminiUsageMetadata = Field(
        default_factory=GeminiUsageMetadata, alias="usageMetadata"
    )

    class Config:
        populate_by_name = True
