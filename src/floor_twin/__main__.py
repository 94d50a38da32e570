"""Allow ``python -m floor_twin``."""

from floor_twin.run import main

main()
