import os
from pathlib import Path
from typing import Optional, Union

import yaml

from localizer.mcl.particle_filter import FilterConfig, InvalidConfigurationError

PROFILE_ENV_VAR = "MCL_FILTER_PROFILE"
DEFAULT_CONFIG_PATH = Path(__file__).parent / "filter.yaml"


def load_filter_config(
    profile: Optional[str] = None,
    config_path: Optional[Union[str, Path]] = None,
) -> FilterConfig:
    """
    Loads a FilterConfig profile from filter.yaml.
    If profile is provided, tries to load that specific profile.
    Otherwise, checks the MCL_FILTER_PROFILE env var, or falls back to 'default'.
    Keys missing from the profile keep the FilterConfig defaults.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    with open(path, "r") as f:
        config = yaml.safe_load(f) or {}

    # 1. Try argument
    target = profile

    # 2. Try env var
    if not target:
        target = os.environ.get(PROFILE_ENV_VAR)

    # 3. Fallback to default
    if not target or target not in config:
        target = "default"

    c = config.get(target) or {}
    defaults = FilterConfig()

    seed = c.get("seed", defaults.seed)
    cfg = FilterConfig(
        num_particles=int(c.get("num_particles", defaults.num_particles)),
        yaw_rate_eps=float(c.get("yaw_rate_eps", defaults.yaw_rate_eps)),
        weight_sum_eps=float(c.get("weight_sum_eps", defaults.weight_sum_eps)),
        resample_method=str(c.get("resample_method", defaults.resample_method)),
        seed=None if seed is None else int(seed),
    )
    try:
        cfg.validate()
    except InvalidConfigurationError as e:
        raise InvalidConfigurationError(f"profile {target!r} in {path}: {e}") from e
    return cfg
