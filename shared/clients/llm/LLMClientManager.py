from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig

DEFAULT_LLM_ENGINE = "openai"


class LLMClientManager:
    """Picks the chat backend named by LLM_ENGINE (openai, ollama)."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        engine = self.helper_config.get_string_val("LLM_ENGINE", default=DEFAULT_LLM_ENGINE)
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> LLMClientInterface:
        """
        Raises:
            ValueError: If no client module exists for the configured engine.
        """
        engine = self._get_engine_from_env()
        class_name = f"LLMClient{engine}"
        try:
            module = __import__(f"shared.clients.llm.{engine.lower()}.{class_name}", fromlist=[class_name])
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported LLM engine '{engine}'. Error: {e}")

        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Chat engine: %s (model %s)", engine, client.chat_model)
        return client

    def get_client(self) -> LLMClientInterface:
        return self.client
