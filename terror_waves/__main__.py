import sys

from terror_waves.scripts.run_report import main

sys.exit(main())
