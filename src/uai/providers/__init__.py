"""
Provider adapters: claude-code, o3-mcp, gemini-cli.
"""
