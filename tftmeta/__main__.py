import sys

from tftmeta.cli import main

sys.exit(main())
