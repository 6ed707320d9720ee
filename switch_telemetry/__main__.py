"""Allow ``python -m switch_telemetry``."""
import sys

from switch_telemetry.main import main

sys.exit(main())
