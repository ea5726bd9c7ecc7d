"""graphdeploy: migrate, build and deploy subgraphs to Graph nodes."""

__version__ = "0.1.0"
