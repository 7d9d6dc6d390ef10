"""Allow ``python -m Errorbook.RegistryIndex``."""

from .cli import main

main()
