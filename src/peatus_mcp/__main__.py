from peatus_mcp.server import main

main()
