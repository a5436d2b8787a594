from service.router.router import Router, RouteMatch, match_route, route_template

__all__ = ["Router", "RouteMatch", "match_route", "route_template"]
