"""Quick test to verify MCP server can be invoked."""

import os
import sys

# Set environment for test
os.environ["PT_TRACKER_DB_PATH"] = ":memory:"
os.environ["PT_TRACKER_GENERATION_BACKEND"] = "none"

# Test import and initialization
try:
    from pt_tracker.mcp import server, TOOLS, get_extension, reset_extension

    print(f"[OK] MCP server module imported successfully")
    print(f"[OK] Found {len(TOOLS)} tools:")
    for tool in TOOLS:
        print(f"  - {tool.name}: {tool.description}")

    # Test extension initialization
    extension = get_extension()
    print(f"\n[OK] Extension initialized with config:")
    print(f"  - db_path: {extension.config.db_path}")
    print(f"  - extension_id: {extension.extension_id}")
    print(f"  - generation_backend: {extension.config.generation_backend}")
    print(f"  - output filter: {extension.host.output_filters[extension.extension_id]}")

    # Clean up
    reset_extension()

    print("\n[OK] All tests passed!")
    sys.exit(0)

except Exception as e:
    print(f"\n[ERROR] {e}")
    import traceback
    traceback.print_exc()
    sys.exit(1)
