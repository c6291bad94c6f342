from pydantic import BaseModel


class EnvConfig(BaseModel):
    """One engine setting, e.g. env_key "API_KEY" for EMBED_OPENAI_API_KEY.

    default=None marks the setting as required.
    """

    env_key: str
    val_type: str = "string"
    default: str | int | float | bool | list | None = None
