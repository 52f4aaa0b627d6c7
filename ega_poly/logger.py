"""
logger.py

Configuración del logger del paquete ``ega_poly``: salida por consola y, si se
indica un directorio, un archivo ``AAAAMMDD_HHMMSS.log``.

Los módulos sólo piden ``logging.getLogger(__name__)``; quien ejecuta (la CLI o
el proceso de cada worker) llama a ``get_logger`` una vez para instalar los
handlers. Llamarlo de nuevo no duplica handlers.
"""

import logging
import time
from logging import FileHandler, StreamHandler
from pathlib import Path

LOG_FORMAT = "[%(asctime)s : %(levelname)s - %(filename)s] %(message)s"


def get_logger(name: str = "ega_poly", log_dir=None, level: int = logging.INFO) -> logging.Logger:
    """Configura el logger del paquete: consola y, si se da ``log_dir``, un archivo con fecha."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)
    stream_handler = StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_dir is not None:
        log_dir_path = Path(log_dir)
        log_dir_path.mkdir(parents=True, exist_ok=True)
        log_file = log_dir_path / f"{time.strftime('%Y%m%d_%H%M%S')}.log"
        file_handler = FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
