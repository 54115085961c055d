from .weather_bins import WeatherDataset, DesignConditions, ALL_WEEK
