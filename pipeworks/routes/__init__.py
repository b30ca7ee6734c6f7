"""HTTP blueprints: level play (`level_api`) and campaign progress (`progress_api`)."""
