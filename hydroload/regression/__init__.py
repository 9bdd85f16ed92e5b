"""
hydroload.regression - Load regression, model selection and bias correction.

Core classes
------------
:class:`LoadRegression`
    Fits ``log(load) ~ terms`` by least squares and returns a
    :class:`FittedModel` with coefficients, residuals, diagnostics and
    load estimation methods.

:class:`ModelSelector`
    Fits the LOADEST predefined models (plus optional extra terms) and
    returns a :class:`CandidateTable` ranked by AIC, SPPC or PPCC.

:class:`BiasCorrector`
    MLE and Duan smearing retransformation bias-correction factors.

Typical usage
-------------
::

    from hydroload.core import ModelSpecification, Term
    from hydroload.regression import LoadRegression, ModelSelector

    table = ModelSelector("Nitrate", data, add_terms=[Term.custom("dQ1")]).evaluate()
    print(table.ranked("aic"))

    spec = ModelSpecification(
        "Nitrate",
        (Term.quadratic("Flow"), Term.dectime("Date"),
         Term.fourier("Date", 2), Term.custom("dQ1")),
    )
    model = LoadRegression(spec, data).fit()
    print(model.summary())
"""

from hydroload.regression.bias import BiasCorrection, BiasCorrector
from hydroload.regression.design import DesignInfo, build_design
from hydroload.regression.load_reg import FittedModel, LoadRegression, load_reg
from hydroload.regression.prediction import aggregate_loads, estimate_loads
from hydroload.regression.selection import (
    CandidateEntry,
    CandidateTable,
    ModelSelector,
    loadest_models,
)

__all__ = [
    "BiasCorrection",
    "BiasCorrector",
    "DesignInfo",
    "build_design",
    "FittedModel",
    "LoadRegression",
    "load_reg",
    "aggregate_loads",
    "estimate_loads",
    "CandidateEntry",
    "CandidateTable",
    "ModelSelector",
    "loadest_models",
]
