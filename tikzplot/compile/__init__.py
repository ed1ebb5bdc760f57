from tikzplot.compile.pipeline import OutputMode, SaveResult, intermediate_paths, save_figure, select_mode

__all__ = ["OutputMode", "SaveResult", "intermediate_paths", "save_figure", "select_mode"]
