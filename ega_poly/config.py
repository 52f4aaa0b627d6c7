"""
config.py

Configuración del ajuste: valores por defecto, carga desde YAML, fusión con los
valores del usuario y validación.

Ejemplo de archivo:

    workers: 3
    ega_params:
      populationSize: 500
      maxGenerationNumber: 2000
    generator_params:
      coefficients: [1.0, 2.0, 3.0, 4.0]
      noise_std: 0.05
"""

import copy
import warnings

import yaml

from .errors import ConfigurationError

DEFAULT_EGA_PARAMS = {
    "populationSize": 200,
    "geneCount": 4,
    "pointCount": None,  # None: tantos como puntos leídos
    "mutationIndividualMean": 1.0,
    "mutationIndividualStdDev": 1.0,
    "mutationGeneMean": 0.0,
    "mutationGeneStdDev": 1.0,
    "mutationStep": 0.01,
    "maxGenerationNumber": 5000,
    "maxConstIter": 1000,
    "targetError": 1e-3,
    "convergenceEpsilon": 0.01,
    "init_range": [-5.0, 5.0],
    "backend": "vectorized",
    "processes": None,
    "seed": 42,
    "log_every": 100,
}


def get_default_config():
    # Retorna la configuración por defecto completa.
    return {
        "workers": 1,
        "input_file": None,
        "output_dir": "results",
        "log_dir": None,
        "generator_params": {
            "coefficients": [1.0, 2.0, 3.0, 4.0],
            "pointCount": 100,
            "x_range": [-1.0, 1.0],
            "noise_std": 0.0,
            "seed": 42,
        },
        "ega_params": copy.deepcopy(DEFAULT_EGA_PARAMS),
    }


def load_config(path):
    """Carga un archivo de configuración en formato YAML."""
    with open(path, "r") as filehandler:
        config = yaml.safe_load(filehandler)
    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"El archivo {path} debe contener un diccionario en el nivel superior.")
    return config


def check_for_unknown_keys(user_config, default_config, path=""):
    """Advierte sobre claves desconocidas en la configuración del usuario de forma recursiva."""
    for key in user_config:
        full_path = f"{path}.{key}" if path else key
        if key not in default_config:
            warnings.warn(f"Clave desconocida '{full_path}' en la configuración. Podría ser un error tipográfico y será ignorada.")
        elif isinstance(user_config.get(key), dict) and isinstance(default_config.get(key), dict):
            check_for_unknown_keys(user_config[key], default_config[key], path=full_path)


def validate_config(config, default_config, path=""):
    """Valida que estén todas las claves y que las secciones sean diccionarios."""
    for key, value in default_config.items():
        full_path = f"{path}.{key}" if path else key
        if key not in config:
            raise ConfigurationError(f"Clave requerida faltante en la configuración: {full_path}")
        if isinstance(value, dict):
            if not isinstance(config[key], dict):
                raise ConfigurationError(f"El valor para la clave '{full_path}' debe ser un diccionario.")
            validate_config(config[key], value, path=full_path)


def merge_configs(default, user):
    """Fusiona dos diccionarios de configuración de forma recursiva."""
    merged = copy.deepcopy(default)
    for key, value in user.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value
    return merged


def build_config(path=None, overrides=None):
    """Configuración lista para usar: defaults + archivo (si hay) + overrides, validada."""
    default_config = get_default_config()
    user_config = load_config(path) if path is not None else {}
    check_for_unknown_keys(user_config, default_config)
    config = merge_configs(default_config, user_config)
    if overrides:
        config = merge_configs(config, overrides)
    validate_config(config, default_config)
    try:
        config["workers"] = int(config["workers"])
    except (TypeError, ValueError) as error:
        raise ConfigurationError(f"workers inválido: {error}") from error
    if config["workers"] < 1:
        raise ConfigurationError(f"workers debe ser al menos 1 (recibido {config['workers']}).")
    return config
