"""Allow running as: python -m skir"""

from skir.cli import main

main()
