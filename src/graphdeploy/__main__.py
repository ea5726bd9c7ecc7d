"""graphdeploy command line entry point.

    python -m graphdeploy deploy subgraph.yaml -n user/name -g http://localhost -i http://localhost:5001
"""

from graphdeploy.cli import cli

if __name__ == "__main__":
    cli(prog_name="graphdeploy")
