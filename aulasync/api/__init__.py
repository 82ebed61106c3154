"""Clients and records for the services aulasync talks to.

Keep package import lightweight; import heavy submodules explicitly where needed.
"""

__all__ = [
	"auth",
	"backend",
	"classroom",
	"horario",
	"models",
	"exceptions",
	"utils",
]
