from .pose import Pose2D, calc_relative_pose, calc_global_pose
from .scan import INVALID_NORMAL, PointType, Scan, ScanPoint
from .normals import PointNormalAnalyzer
from .resample import PointResampler
from .association import CorrespondenceFinder, Correspondences, ReferenceSet
from .cost import PointToLineCost, SquaredDistanceCost, cost_from_config
from .optimizer import OptimizationResult, PoseOptimizer, Termination
from .estimator import EstimateResult, IcpEstimator
from .matcher import MatchResult, ScanMatcher
from .config import DEFAULT_CONFIG, load_config
from .errors import ConfigError, InsufficientDataError, ScanMatchError
