"""Allow ``python -m hostcert``."""

from hostcert.cli.main import main

main()
