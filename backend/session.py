from pointviewer import VisualizationController

# Singleton viewer session; the browser front end drives one request at a time
viewer = VisualizationController()


def get_viewer() -> VisualizationController:
    return viewer
