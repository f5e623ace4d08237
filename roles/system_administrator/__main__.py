import sys

from roles.system_administrator.orchestrator import main

sys.exit(main())
