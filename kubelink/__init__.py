"""
Kubelink - Pub/Sub to Kubernetes Bridge

Receives resource manifests over a pub/sub channel, applies them to a
Kubernetes cluster and reports observed resource state back over the
same channel.

Architecture:
- Each module is self-contained with clear interfaces
- Modules receive their collaborators (clients, loggers) at construction
- All communication through defined interfaces

Modules:
- manifest: Typed resource manifests and decoding
- cluster: Kubernetes API capability set per resource kind
- reconciler: Apply/delete convergence with conflict retry
- router: Command message grammar and dispatch
- reporter: Periodic resource state publishing
- transport: Pub/sub messaging channel
- health: Liveness/readiness endpoint
"""

__version__ = "1.0.0"
