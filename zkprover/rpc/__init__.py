"""
zkprover JSON-RPC surface.

- jsonrpc: method registry + JSON-RPC 2.0 dispatcher
- server: FastAPI app factory and uvicorn entrypoint
- middleware: access logging
"""
