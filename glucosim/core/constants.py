"""
Central location for the physiological constants used by the simulation engine.
"""

# Grid
STEP_MINUTES = 5
HORIZON_HOURS = 24
STEPS_PER_HOUR = 60 // STEP_MINUTES
HORIZON_STEPS = HORIZON_HOURS * STEPS_PER_HOUR  # 288

# Glucose bounds (mg/dL)
BASELINE_MGDL = 120.0
ENGINE_MIN_MGDL = 40.0
ENGINE_MAX_MGDL = 400.0
STORAGE_MIN_MGDL = 20.0
STORAGE_MAX_MGDL = 600.0

# Liver output, expressed per hour
ENDOGENOUS_MGDL_PER_HOUR = 2.0

# Carbohydrate absorption (bilinear)
CARB_PEAK_MINUTES = 60
CARB_DURATION_MINUTES = 240
CARB_STEP_SCALE = 0.05

# Rapid acting insulin
RAPID_INSULIN_PEAK_MINUTES = 55
RAPID_INSULIN_DURATION_MINUTES = 300
RAPID_INSULIN_STEP_SCALE = 0.05

# Long acting insulin (flat release)
LONG_INSULIN_DURATION_MINUTES = 1440

# Exercise
# Format: {intensity: multiplier}
EXERCISE_INTENSITY_TABLE = {
    "light": 0.5,
    "moderate": 1.0,
    "intense": 2.0,
}
EXERCISE_ACTIVE_DELTA = 0.5  # mg/dL per step at moderate intensity
EXERCISE_RESIDUAL_DELTA = 0.2
EXERCISE_TAIL_MINUTES = 180
EXERCISE_DECAY_MINUTES = 120

# Weekly noise: 7 days x 24 h x 12 steps
NOISE_LENGTH = 7 * 24 * STEPS_PER_HOUR  # 2016
NOISE_AMPLITUDE = 0.3
NOISE_OCTAVES = 1
NOISE_PERSISTENCE = 0.3

# Fallback curve
FALLBACK_AMPLITUDE_MGDL = 30.0
FALLBACK_PERIOD_HOURS = 24
FALLBACK_MIN_MGDL = 70.0
FALLBACK_MAX_MGDL = 200.0

# Readouts
CURRENT_VALUE_WINDOW_MINUTES = 5
TREND_WINDOW_MINUTES = 15
TREND_MIN_POINTS = 3

# Longest effect window; treatments older than this cannot move the curve
MAX_LOOKBACK_HOURS = LONG_INSULIN_DURATION_MINUTES // 60
