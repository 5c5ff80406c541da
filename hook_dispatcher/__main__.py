import sys

from hook_dispatcher.main import main

sys.exit(main())
