"""
Command-line tools:

  zkprover-prove   batch proving of trace files      (zkprover.cli.prove)
  zkprover-setup   trusted-setup parameter creation  (zkprover.cli.setup)
  zkprover-server  JSON-RPC prover service           (zkprover.cli.serve)
"""
