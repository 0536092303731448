"""Allow ``python -m inlineref``."""

from .app import main

raise SystemExit(main())
