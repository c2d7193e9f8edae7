from .static import StaticFiles  # NOQA: F401

# EOF
