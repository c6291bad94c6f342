from pydantic import AliasChoices, BaseModel, Field


class AskRequest(BaseModel):
    """Body of POST /rag/ask. allowGeneral is accepted for older clients."""

    question: str | None = None
    top_k: int = Field(default=5, validation_alias=AliasChoices("topK", "top_k"))
    allow_general_knowledge: bool = Field(
        default=True,
        validation_alias=AliasChoices("allowGeneralKnowledge", "allowGeneral"),
    )
