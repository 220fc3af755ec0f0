import sys

from json_schema_bundler.cli import main

sys.exit(main())
