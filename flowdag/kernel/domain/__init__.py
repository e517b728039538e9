"""Domain types: tasks, phases, results and the phase dependency graph."""
