"""Phase execution, pipeline engine, validation and checkpoints."""
