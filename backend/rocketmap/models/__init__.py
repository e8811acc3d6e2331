from .assumption import Assumption, assumption_blocks
from .canvas import Block, Canvas
from .experiment import Experiment
from .segment import Segment, block_segments
from .user import User

__all__ = ["Assumption", "assumption_blocks", "Block", "block_segments", "Canvas", "Experiment", "Segment", "User"]
