"""covdelta: per-package coverage deltas for pull requests in a JavaScript monorepo."""

__version__ = "0.1.0"
