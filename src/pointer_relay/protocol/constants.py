# Wire and timing constants (canonical values live here)

DEFAULT_PORT = 8080
DEFAULT_SERVER_URL = f"ws://localhost:{DEFAULT_PORT}"

# producer
RECONNECT_DELAY_S = 3.0
SEND_INTERVAL_S = 0.05  # 20 checks per second
MIN_DISTANCE_PX = 2.0
MAX_DEBUG_POINTS = 100
DRAIN_IDLE_S = 1.0 / 60.0

# consumer
DECAY_STEP = 0.005
VISIBILITY_FLOOR = 0.05
FRAME_INTERVAL_S = 1.0 / 60.0
