"""Library-specific binding configurations (each exposes `configure(gen)`)"""
