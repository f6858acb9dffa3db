"""
Engine entry points.

``run`` is the typed entry: it raises engine errors. ``solve`` is the entry
used by a request-processing collaborator: it accepts the camelCase
parameter bag and returns either the list of ``{x, y}`` samples or a
structured failure ``{success: False, kind, message}``.
"""

from typing import Any, Dict, List, Mapping, Optional, Union

from .context import SolverContext
from .errors import FracDecompError
from .models import MODELS, Method, Model, build_solver
from .params import SolverParameters
from .utils import SolutionCurve


def run(model, method, params: SolverParameters,
        context: Optional[SolverContext] = None) -> SolutionCurve:
    """
    Solve one problem.

    Parameters
    ----------
    model : Model or str
        Model identifier
    method : Method or str
        Method identifier
    params : SolverParameters
        Validated parameters
    context : SolverContext, optional
        Request context (a fresh one is created if not given)

    Returns
    -------
    curve : SolutionCurve

    Raises
    ------
    FracDecompError
        Any engine error; nothing is converted to a default value
    """
    context = context if context is not None else SolverContext()
    solver = build_solver(model, method, context)
    params = params.validate()
    if context.verbose:
        print(f"Solving {Model.parse(model).value} with {Method.parse(method).value}")
    return solver.solve(params)


def parse_request(request: Mapping[str, Any]):
    """
    Resolve model, method and parameters of a request bag.

    Validation completes here, before any matrix, series or executor work.
    """
    model = Model.parse(request.get('model'))
    method = Method.parse(request.get('method', Method.ADM.value))
    defaults = {'nonlinear_term': MODELS[model].nonlinear_term}
    params = SolverParameters.from_request(request, defaults=defaults)
    return model, method, params


def solve(request: Mapping[str, Any],
          context: Optional[SolverContext] = None
          ) -> Union[List[Dict[str, float]], Dict[str, Any]]:
    """
    Request entry point.

    Examples
    --------
    >>> solve({'model': 'fractionalSineGordon', 'method': 'ADM', 'alpha': 0.9,
    ...        'polynomialDegree': 5, 'maxTerms': 10, 'timeSteps': 100,
    ...        'timeEnd': 10, 'initialCondition': lambda t: 1.0})[0]['x']
    0.0
    >>> solve({'model': 'fractionalSineGordon', 'alpha': 1.5, 'timeSteps': 10,
    ...        'timeEnd': 1, 'initialCondition': 1.0})['kind']
    'ParameterRangeError'
    """
    try:
        model, method, params = parse_request(request)
        curve = run(model, method, params, context)
    except FracDecompError as exc:
        return exc.to_failure()
    return curve.points()
