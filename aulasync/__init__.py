"""aulasync: reconcile a classroom gradebook with its remote services."""

__version__ = "1.0.0"
__all__ = [
	"coordinator",
	"classroom_flow",
	"store",
	"models",
]
