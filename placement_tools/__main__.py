import sys

from placement_tools.run_simulation_demo import main

sys.exit(main())
