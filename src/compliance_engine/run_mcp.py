import argparse

from compliance_engine.mcp_server.mcp_server import mcp


def main():
    """
    Entry point for running the MCP server.

    Example:
        >>> # python -m compliance_engine.run_mcp --transport stdio
    """
    parser = argparse.ArgumentParser(description="Compliance engine MCP server")
    parser.add_argument("--transport", choices=["stdio", "sse"], default="stdio")
    args = parser.parse_args()

    mcp.run(transport=args.transport)


if __name__ == "__main__":
    main()
