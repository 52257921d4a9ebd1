"""
Pneuma: calls, receipts and the backends that execute them.

- transfers: payment normalization and transaction data
- receipt / results: receipt model and result extraction
- gateway: async HTTP collaborator
- executors: mock, network, simulation and dummy backends
- events: event index queries
"""
