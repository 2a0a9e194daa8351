from .route import Route, RouteStop
