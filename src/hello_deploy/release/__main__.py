import sys

from hello_deploy.release.cli import main

sys.exit(main())
