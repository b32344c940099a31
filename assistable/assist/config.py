import logging
LOGGER = logging.getLogger(__name__)

from dotenv import load_dotenv
import os
import importlib
from typing import List, Type, TypeVar
from assistable.assist.cache import assist_cache

load_dotenv()

T = TypeVar("T")

DEFAULT_GATEWAY_CLASS = 'assistable.assist.providers.openai.OAIAGateway.OAIAGateway'


class Config:

    gateway = None

    def __init__(self):
        LOGGER.info("Created Config instance")

    @classmethod
    @assist_cache
    def config(cls):
        return Config()

    def get_class_from_env(self, env_var: str, default: str, expected_type: Type[T]) -> T:
        path = os.getenv(env_var, default)
        LOGGER.info(f"Using gateway class: {path}")

        try:
            module_path, class_name = path.rsplit(".", 1)
            module = importlib.import_module(module_path)
            cls = getattr(module, class_name)
            LOGGER.info(f"Loaded gateway class: {cls}")

            if not issubclass(cls, expected_type):
                raise TypeError(f"Class {path} is not a subclass of {expected_type.__name__}")

            return cls
        except (ImportError, AttributeError, TypeError) as e:
            LOGGER.error(f"Failed to load or validate class {path}: {e}")
            raise

    def get_gateway(self):
        """
        Have to lazy init the gateway here to avoid circular imports.
        """
        if self.gateway is None:
            from assistable.assist.providers.gateway import ResourceGateway
            gateway_class = self.get_class_from_env('ASSISTABLE_GATEWAY_CLASS', DEFAULT_GATEWAY_CLASS, ResourceGateway)
            method = getattr(gateway_class, 'gateway', None)
            if method is None:
                raise TypeError(f"Gateway class {gateway_class.__name__} has no gateway() factory")
            self.gateway = method()
        return self.gateway

    def get_assistant_id(self) -> str:
        assistant_id = os.getenv('ASSISTANT_ID')
        if not assistant_id:
            raise EnvironmentError("ASSISTANT_ID environment variable not set.")
        return assistant_id

    def get_font_file_id(self):
        return os.getenv('FONT_FILE_ID') or None

    def get_font_name(self) -> str:
        return os.getenv('FONT_NAME', 'NotoSansJP.ttf')

    def get_upload_dir(self) -> str:
        return os.getenv('UPLOAD_DIR', '/mnt/data/upload_files')

    def get_input_file_paths(self) -> List[str]:
        paths_str = os.getenv('INPUT_FILE_PATHS', os.path.join('input', 'Excel.zip'))
        return [path.strip() for path in paths_str.split(',') if path.strip()]

    def get_output_dir(self) -> str:
        return os.getenv('OUTPUT_DIR', 'output')

    def get_poll_interval(self) -> float:
        interval_str = os.getenv('RUN_POLL_INTERVAL', '5')
        try:
            interval = float(interval_str)
        except ValueError:
            LOGGER.warning(f"Invalid RUN_POLL_INTERVAL '{interval_str}', using 5 seconds")
            return 5.0
        if interval <= 0:
            LOGGER.warning(f"RUN_POLL_INTERVAL must be positive, got {interval}; using 5 seconds")
            return 5.0
        return interval

    def get_openai_config(self) -> dict:
        """
        Returns the client settings. An Azure key selects the Azure client,
        otherwise the plain OpenAI client is used.
        """
        if os.getenv('AZURE_OPENAI_API_KEY'):
            return {
                'azure': True,
                'api_key': os.getenv('AZURE_OPENAI_API_KEY'),
                'azure_endpoint': os.getenv('AZURE_OPENAI_ENDPOINT'),
                'api_version': os.getenv('AZURE_OPENAI_API_VERSION', os.getenv('API_VERSION', '2025-04-01-preview')),
            }
        return {
            'azure': False,
            'api_key': os.getenv('OPENAI_KEY'),
            'project': os.getenv('OPENAI_PROJECT'),
        }
