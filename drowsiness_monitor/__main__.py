import sys

from drowsiness_monitor.main import main

sys.exit(main())
