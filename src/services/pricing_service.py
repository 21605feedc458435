"""Product pricing strategies.

The pricing model is detected once per product when it is loaded; a
selection (attribute name -> chosen option) is then evaluated by the one
function registered for the model's variant.
"""

import logging
from collections.abc import Callable
from decimal import Decimal

from src.core.money import to_money
from src.schemas.product import (
    BloxxPricing,
    ComplexVariationPricing,
    PricedSelection,
    PricingModel,
    ProductVariation,
    SimplePricing,
    SingleVariationPricing,
)

logger = logging.getLogger(__name__)

SHAPE_ATTRIBUTE = "Pole Shape"
SIZE_ATTRIBUTE = "Pole Size"
VERSION_ATTRIBUTE = "Version"

# Cart label used for a single-variation product's selection
SINGLE_OPTION_NAME = "Option"

Selection = dict[str, str]


def detect_pricing_model(
    price: Decimal,
    attribute_names: list[str],
    variations: list[ProductVariation],
) -> PricingModel:
    """Choose a product's pricing strategy.

    Args:
        price: The product's own price, used when it has no variations.
        attribute_names: Names of the product's variation attributes.
        variations: The product's variations.

    Returns:
        PricingModel: The tagged pricing variant.
    """
    if not variations:
        return SimplePricing(price=to_money(price))
    if len(variations[0].attributes) == 1:
        return SingleVariationPricing(variations=variations)
    if SHAPE_ATTRIBUTE in attribute_names and SIZE_ATTRIBUTE in attribute_names:
        return BloxxPricing(variations=variations)
    return ComplexVariationPricing(variations=variations)


def _priced(variation: ProductVariation | None) -> PricedSelection | None:
    if variation is None or variation.price is None:
        return None
    return PricedSelection(variation_id=variation.id, price=to_money(variation.price))


def evaluate_simple(model: SimplePricing, selection: Selection) -> PricedSelection | None:
    return PricedSelection(variation_id=None, price=model.price)


def evaluate_single_variation(model: SingleVariationPricing, selection: Selection) -> PricedSelection | None:
    """Match the variation whose only option equals the selected one."""
    for variation in model.variations:
        for attr in variation.attributes:
            chosen = selection.get(attr.name, selection.get(SINGLE_OPTION_NAME))
            if chosen == attr.option:
                return _priced(variation)
    return None


def evaluate_complex_variation(model: ComplexVariationPricing, selection: Selection) -> PricedSelection | None:
    """Match the variation whose every attribute equals the selection."""
    for variation in model.variations:
        if all(selection.get(attr.name) == attr.option for attr in variation.attributes):
            return _priced(variation)
    return None


def evaluate_bloxx(model: BloxxPricing, selection: Selection) -> PricedSelection | None:
    """Match shape and size; version only where the variation defines one."""
    shape = selection.get(SHAPE_ATTRIBUTE)
    size = selection.get(SIZE_ATTRIBUTE)
    if not shape or not size:
        return None
    for variation in model.variations:
        if variation.option_for(SHAPE_ATTRIBUTE) != shape or variation.option_for(SIZE_ATTRIBUTE) != size:
            continue
        version = variation.option_for(VERSION_ATTRIBUTE)
        if version is None or version == selection.get(VERSION_ATTRIBUTE):
            return _priced(variation)
    return None


EVALUATORS: dict[str, Callable[..., PricedSelection | None]] = {
    "simple": evaluate_simple,
    "single-variation": evaluate_single_variation,
    "complex-variation": evaluate_complex_variation,
    "bloxx": evaluate_bloxx,
}


def evaluate(model: PricingModel, selection: Selection) -> PricedSelection | None:
    """Price a selection.

    Args:
        model: The product's pricing model.
        selection: Chosen option per attribute name.

    Returns:
        PricedSelection | None: Matched variation and unit price, or None when
        the selection matches no priced variation.
    """
    priced = EVALUATORS[model.type](model, selection)
    if priced is None:
        logger.debug("No %s variation matches selection %s", model.type, selection)
    return priced


def default_selection(model: PricingModel) -> Selection:
    """Initial selection: the options of the first variation."""
    if isinstance(model, SimplePricing) or not model.variations:
        return {}
    first = model.variations[0]
    if isinstance(model, SingleVariationPricing):
        return {SINGLE_OPTION_NAME: first.attributes[0].option} if first.attributes else {}
    return {attr.name: attr.option for attr in first.attributes}


def filter_options(model: ComplexVariationPricing, attribute: str, selection: Selection) -> list[str]:
    """Options for one attribute that stay compatible with the other selections.

    Args:
        model: Complex-variation pricing model.
        attribute: Attribute whose options are listed.
        selection: Current selection.

    Returns:
        list[str]: Compatible options, in first-seen order.
    """
    options: list[str] = []
    for variation in model.variations:
        compatible = all(
            attr.name == attribute or selection.get(attr.name) == attr.option for attr in variation.attributes
        )
        option = variation.option_for(attribute)
        if compatible and option is not None and option not in options:
            options.append(option)
    return options


def bloxx_shapes(model: BloxxPricing) -> list[str]:
    """Distinct pole shapes, in first-seen order."""
    shapes: list[str] = []
    for variation in model.variations:
        shape = variation.option_for(SHAPE_ATTRIBUTE)
        if shape is not None and shape not in shapes:
            shapes.append(shape)
    return shapes


def bloxx_options_for_shape(model: BloxxPricing, shape: str) -> tuple[list[str], list[str]]:
    """Sizes and versions available for a pole shape.

    Returns:
        tuple: (sizes, versions), each in first-seen order.
    """
    sizes: list[str] = []
    versions: list[str] = []
    for variation in model.variations:
        if variation.option_for(SHAPE_ATTRIBUTE) != shape:
            continue
        size = variation.option_for(SIZE_ATTRIBUTE)
        version = variation.option_for(VERSION_ATTRIBUTE)
        if size is not None and size not in sizes:
            sizes.append(size)
        if version is not None and version not in versions:
            versions.append(version)
    return sizes, versions
