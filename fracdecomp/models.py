"""
Models and methods.

A closed set of model identifiers, each mapped to its nonlinear term, its
linear operator and the methods it offers, and a closed set of methods, each
mapped to a solver class. Adding a model means adding an enum member and a
table entry.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Type

from .context import SolverContext
from .errors import UnsupportedSelectionError
from .solvers import ADMSolver, LADMSolver, MHPMSolver, STADMSolver, Solver


def _normalize(name: str) -> str:
    return ''.join(ch for ch in name.lower() if ch.isalnum())


class _Selector(Enum):

    @classmethod
    def parse(cls, name):
        """Case-insensitive lookup by value or member name."""
        if isinstance(name, cls):
            return name
        if isinstance(name, str):
            key = _normalize(name)
            for member in cls:
                if key in (_normalize(member.value), _normalize(member.name)):
                    return member
        raise UnsupportedSelectionError(cls.__name__.lower(), name,
                                        f"one of {[m.value for m in cls]}")


class Method(_Selector):
    ADM = 'ADM'
    LADM = 'LADM'
    STADM = 'STADM'
    MHPM = 'MHPM'


class Model(_Selector):
    FRACTIONAL_SINE_GORDON = 'fractionalSineGordon'
    ADVECTION_DIFFUSION_REACTION = 'advectionDiffusionReaction'
    FRACTIONAL_SCHRODINGER = 'fractionalSchrodinger'
    FRACTIONAL_HEAT = 'fractionalHeat'


def sine_gordon(u: float) -> float:
    return math.sin(u)


def logistic_reaction(u: float) -> float:
    return u - u * u


def cubic(u: float) -> float:
    return u ** 3


def linear(u: float) -> float:
    return u


@dataclass(frozen=True)
class ModelDefinition:
    """
    Static description of a model.

    Attributes
    ----------
    nonlinear_term : callable
        Default N(u) when the request does not supply one
    methods : tuple of Method
        Methods the model offers
    operator_terms : tuple of (weight, order), optional
        Linear operator for MHPM; order names refer to parameter fields
    """

    description: str
    nonlinear_term: Callable[[float], float]
    methods: Tuple[Method, ...]
    operator_terms: Optional[Tuple[Tuple[float, str], ...]] = None


ALL_METHODS = (Method.ADM, Method.LADM, Method.STADM, Method.MHPM)

MODELS: Dict[Model, ModelDefinition] = {
    Model.FRACTIONAL_SINE_GORDON: ModelDefinition(
        "D^{α,δ} u + sin(u) = 0", sine_gordon, ALL_METHODS),
    Model.ADVECTION_DIFFUSION_REACTION: ModelDefinition(
        "D^{α,δ} u + D^{β,δ} u + u(1 - u) = 0", logistic_reaction, (Method.MHPM,),
        operator_terms=((1.0, 'alpha'), (1.0, 'beta'))),
    Model.FRACTIONAL_SCHRODINGER: ModelDefinition(
        "D^{α,δ} u + u^3 = 0", cubic, ALL_METHODS),
    Model.FRACTIONAL_HEAT: ModelDefinition(
        "D^{α,δ} u + u = 0", linear, ALL_METHODS),
}

SOLVERS: Dict[Method, Type[Solver]] = {
    Method.ADM: ADMSolver,
    Method.LADM: LADMSolver,
    Method.STADM: STADMSolver,
    Method.MHPM: MHPMSolver,
}


def available_models() -> List[str]:
    return [model.value for model in MODELS]


def available_methods(model) -> List[str]:
    model = Model.parse(model)
    return [method.value for method in MODELS[model].methods]


def build_solver(model, method, context: Optional[SolverContext] = None) -> Solver:
    """
    Solver instance for a (model, method) pair.

    Raises
    ------
    UnsupportedSelectionError
        If the model or method is unknown, or the model does not offer it
    """
    model = Model.parse(model)
    method = Method.parse(method)
    definition = MODELS[model]
    if method not in definition.methods:
        raise UnsupportedSelectionError(
            'method', method.value,
            f"one of {[m.value for m in definition.methods]} for model {model.value}")
    solver_cls = SOLVERS[method]
    if method is Method.MHPM:
        return solver_cls(context, operator_terms=definition.operator_terms)
    return solver_cls(context)
