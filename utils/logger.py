import logging
import logging.config


def setup_logger(config) -> logging.Logger:
    """Apply the logging section of an AppConfig and return the root logger"""
    if config.log_to_file:
        config.local.log_dir.mkdir(exist_ok=True, parents=True)
    logging.config.dictConfig(config.get_logging_config())
    return logging.getLogger()
