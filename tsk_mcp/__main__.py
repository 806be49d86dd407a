from tsk_mcp.cli import main

main()
