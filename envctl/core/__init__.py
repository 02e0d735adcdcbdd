"""Core domain: models, orchestration, and the ambient services around them."""
