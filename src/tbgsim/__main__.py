import sys

from tbgsim.app.main import main

sys.exit(main())
