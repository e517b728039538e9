"""Concrete collaborators: command runners, task executors and state stores."""
