"""Stop ordering: matrix acquisition, heuristics, search and route assembly."""
