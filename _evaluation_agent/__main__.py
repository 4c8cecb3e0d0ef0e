import sys

from .evaluation_pipeline_main import main

sys.exit(main())
