from .matcher import DEFAULT_SNAPSHOT, WeatherMatcher, find_closest_forecast, select_daily_forecast
from .predictor import InvalidRouteError, PredictionStage, RouteWeatherPredictor
from .sampling import SamplingPolicy, plan_sample_points, sample_count
from .summary import summarize

__all__ = [
    "DEFAULT_SNAPSHOT",
    "InvalidRouteError",
    "PredictionStage",
    "RouteWeatherPredictor",
    "SamplingPolicy",
    "WeatherMatcher",
    "find_closest_forecast",
    "plan_sample_points",
    "sample_count",
    "select_daily_forecast",
    "summarize",
]
