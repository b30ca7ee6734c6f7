from typing import Dict


def init_metrics() -> Dict[str, int | float | bool]:
    return {
        'attempts': 0,
        'planning_failures': 0,
        'unsolvable_attempts': 0,
        'fallback_used': False,
        'critical_path_length': 0,
        'critical_path_turns': 0,
        'key_tiles': 0,
        'key_tiles_emptied': 0,
        'key_tiles_reduced': 0,
        'deceptive_paths': 0,
        'dead_ends': 0,
        'difficulty_adjustments': 0,
        'difficulty_valid': False,
        'valid_path_estimate': 0,
        'solution_paths': 0,
        'search_truncated': False,
        'fill_truncated': False,
        'max_fillable_tiles': 0,
        'runtime_ms': 0.0,
    }
