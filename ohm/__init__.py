"""
OHM Traffic Topology Backend

This package turns recorded HTTP traffic into a browsable topology graph:
which domains contain which subdomains, which URL paths exist under each
host, and which HTTP methods are exposed at each path.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Immutable record, graph and error types shared by every layer
   - No behavior beyond construction and decoding

2. CORE TOPOLOGY (core/)
   - Responsibility: Key index and traffic graph builder
   - Allowed inputs: Sequences of TrafficRecord
   - Outputs: TrafficGraph (fresh per build)
   - MUST NOT: Perform I/O, raise on malformed records

3. TRAFFIC STORE (storage/)
   - Responsibility: Capture persistence, host filtering, pagination
   - Outputs: TrafficQueryResult with explicit error states
   - MUST NOT: Build graphs or interpret traffic

4. API (api/)
   - Responsibility: Routing, query parameters, error envelopes, CORS
   - Maps explicit error states onto HTTP status codes

CONSTRAINTS ENFORCED:
=====================
- Deterministic: Identical record multisets always produce identical graphs
- Explicit errors: Store failures are data until the HTTP edge
- No analytics: Pure structural topology only
"""

__version__ = "0.1.0"
