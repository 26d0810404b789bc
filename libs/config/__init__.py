from .app_config import get_setting, load_app_config, reload_app_config

__all__ = ["get_setting", "load_app_config", "reload_app_config"]
