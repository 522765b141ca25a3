"""Allow ``python -m openapi_ts_codegen``."""

from .cli import main

raise SystemExit(main())
