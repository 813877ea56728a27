"""Task orchestration: execution context, scheduler and the map running task set."""
