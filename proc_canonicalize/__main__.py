import sys

from proc_canonicalize.cli import main

sys.exit(main())
