import sys

from roles.senior_developer.orchestrator import main

sys.exit(main())
