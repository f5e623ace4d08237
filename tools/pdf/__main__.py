import sys

from tools.pdf import main

sys.exit(main())
