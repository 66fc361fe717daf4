from dataclasses import dataclass, field
import yaml
import os
from dacite import from_dict

from src.mediastore.model import MediastoreConfig
from src.mediastore.reconciler import ReconcilerConfig

@dataclass
class ServerConfig:
    # request bodies carry base-64 media, 25mb like the original upload tool
    max_content_length: int = 25 * 1024 * 1024
    log_file: str | None = "mediastore.log"

@dataclass
class AppConfig:
    root_dir: str
    mediastore: MediastoreConfig
    reconciler: ReconcilerConfig = field(default_factory=ReconcilerConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @staticmethod
    def from_yaml(filename: str) -> 'AppConfig':
        with open(filename, 'r') as f:
            data = yaml.safe_load(f) or {}
        return AppConfig.from_dict(data)

    @staticmethod
    def from_dict(data: dict) -> 'AppConfig':
        if "root_dir" not in data:
            data["root_dir"] = os.getcwd()
        data = AppConfig._resolve_paths(data, data["root_dir"])
        return from_dict(AppConfig, data)
    
    @staticmethod
    def _resolve_paths(data: dict, root: str) -> dict:

        def resolve_path(value: str) -> str:
            if value.startswith('/'):
                return value
            return f"{root}/{value}"

        def resolve_config(config: dict) -> dict:
            for key, value in config.items():
                if isinstance(value, str) and (key.endswith('_dir') or key.endswith('_path')):
                    config[key] = resolve_path(value)
                elif isinstance(value, dict):
                    config[key] = resolve_config(value)
            return config

        return resolve_config(data)
