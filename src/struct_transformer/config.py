from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_PACKAGE = "transform"

_TRUE = {"1", "true", "yes", "on"}


@dataclass
class GeneratorConfig:
    package_name: str = DEFAULT_PACKAGE
    helper_package: str = ""
    debug: bool = False
    use_package_in_path: bool = False
    # Base directory for relative go_models_file_path options.
    models_base_dir: str = ""

    def models_path(self, option_path: str) -> str:
        base = self.models_base_dir or os.getcwd()
        return os.path.abspath(os.path.join(base, option_path))

    @classmethod
    def from_parameter(cls, parameter: str) -> GeneratorConfig:
        """Build a config from a protoc plugin parameter string.

        Example: ``package=transform,helper-package=helpers,debug=true``.
        A bare key is read as ``key=true``.
        """
        config = cls()
        for item in parameter.split(","):
            item = item.strip()
            if not item:
                continue
            key, _, value = item.partition("=")
            key = key.strip().replace("_", "-")
            value = value.strip() if _ else "true"

            if key == "package":
                config.package_name = value
            elif key == "helper-package":
                config.helper_package = value
            elif key == "debug":
                config.debug = value.lower() in _TRUE
            elif key == "use-package-in-path":
                config.use_package_in_path = value.lower() in _TRUE
            elif key == "models-base-dir":
                config.models_base_dir = value
            else:
                raise ValueError(f"unknown parameter {key!r}")
        return config
