import sys

from .gpktool import main

sys.exit(main())
