from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig

DEFAULT_EMBED_ENGINE = "openai"


class EmbedClientManager:
    """Picks the embedding backend named by EMBED_ENGINE.

    EMBED_ENGINE=openai loads EmbedClientOpenai from
    shared.clients.embed.openai.EmbedClientOpenai; the engine name is matched
    case-insensitively.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        engine = self.helper_config.get_string_val("EMBED_ENGINE", default=DEFAULT_EMBED_ENGINE)
        # "OPENAI", " openai " -> "Openai"
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> EmbedClientInterface:
        """
        Raises:
            ValueError: If no client module exists for the configured engine.
        """
        engine = self._get_engine_from_env()
        class_name = f"EmbedClient{engine}"
        try:
            module = __import__(f"shared.clients.embed.{engine.lower()}.{class_name}", fromlist=[class_name])
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported Embed engine '{engine}'. Error: {e}")

        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Embedding engine: %s (model %s, batch size %d)", engine, client.embed_model, client.batch_size)
        return client

    def get_client(self) -> EmbedClientInterface:
        return self.client
