"""Front-ends that drive the planner (console REPL)."""
