"""
Cart validation against running promotions.

Two layers of checks are applied per promotion that has items in the cart:

* the promotion type requirement (buy X get Y, quantity discount,
  category mix), and
* the flexible `rules` stored on the promotion (minimum quantity from the
  same promotion, minimum order value), which may also unlock special
  pricing.


Evaluation fails safe: a broken promotion is logged and skipped, never
blocks checkout.
"""
from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP
from logging import getLogger
from typing import Dict, List, Optional

from shop.constants.status import PROMOTION_TYPE
from shop.exceptions import PromotionRuleError
from shop.models import Product, ProductPromotion, Promotion

logger = getLogger(__name__)

CENTS = Decimal('0.01')


class RULE_TYPE:
    minimum_quantity_same_promotion = 'minimum_quantity_same_promotion'
    minimum_order_value = 'minimum_order_value'


class SPECIAL_PRICING:
    fixed_total = 'fixed_total'
    extra_discount = 'extra_discount'
    fixed_per_item = 'fixed_per_item'


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def _plural(count: int) -> str:
    return 's' if count > 1 else ''


def build_cart_lines(items: List[dict]) -> List[dict]:
    """
    Resolve `[{product_id, quantity, price?}]` into cart lines carrying the
    product, the unit price and the running promotion the product is in.
    Unknown products raise PromotionRuleError.
    """
    product_ids = [item['product_id'] for item in items]
    products = Product.objects.select_related('category').in_bulk(product_ids)
    missing = [pk for pk in product_ids if pk not in products]
    if missing:
        raise PromotionRuleError(
            f'Unknown products: {", ".join(map(str, missing))}')

    memberships = {}
    for membership in ProductPromotion.objects.filter(
            product_id__in=product_ids,
            promotion__in=Promotion.objects.running()
    ).select_related('promotion', 'product').order_by('promotion__start_date'):
        memberships.setdefault(membership.product_id, membership)

    lines = []
    for item in items:
        product = products[item['product_id']]
        membership = memberships.get(product.pk)
        price = item.get('price')
        if price is None:
            price = membership.effective_price if membership \
                else product.current_price
        lines.append({
            'product': product,
            'product_id': product.pk,
            'quantity': int(item['quantity']),
            'price': _money(price),
            'promotion': membership.promotion if membership else None,
        })
    return lines


def group_by_promotion(lines: List[dict]) -> 'OrderedDict[int, dict]':
    groups = OrderedDict()
    for line in lines:
        promotion = line['promotion']
        if promotion is None:
            continue
        group = groups.setdefault(
            promotion.pk, {'promotion': promotion, 'lines': []})
        group['lines'].append(line)
    return groups


def _quantity(lines: List[dict]) -> int:
    return sum(line['quantity'] for line in lines)


def _value(lines: List[dict]) -> Decimal:
    return sum((line['price'] * line['quantity'] for line in lines), Decimal('0'))


def _violation(promotion: Promotion, violation_type: str, message: str,
               required_action: str, required=None, current=None) -> dict:
    return {
        'promotion_id': promotion.pk,
        'promotion_name': promotion.name,
        'violation_type': violation_type,
        'message': message,
        'required_action': required_action,
        'required': required,
        'current': current,
    }


def validate_promotion_type(promotion: Promotion, lines: List[dict]) -> Optional[dict]:
    """ Check the requirement implied by the promotion type itself. """
    rules = _rules_config(promotion)
    current = _quantity(lines)
    required = None
    reason = None

    if promotion.promotion_type == PROMOTION_TYPE.buy_x_get_y:
        required = int(rules.get('buyQuantity') or 2)
        if current < required:
            reason = f'Requires {required} items'
    elif promotion.promotion_type == PROMOTION_TYPE.quantity_discount:
        required = int(rules.get('minimumQuantity') or 2)
        if current < required:
            reason = f'Requires {required} items'
    elif promotion.promotion_type == PROMOTION_TYPE.category_mix:
        required_categories = set(rules.get('requiredCategories') or [])
        if required_categories:
            categories = set()
            for line in lines:
                category = line['product'].category
                if category is not None:
                    categories.update(
                        category.get_ancestors(include_self=True)
                        .values_list('pk', flat=True))
            if not required_categories & categories:
                reason = 'Requires items from specific categories'
                required = len(required_categories)
                current = len(categories)

    if reason is None:
        return None
    return _violation(
        promotion, 'insufficient_quantity',
        f'{promotion.name}: {reason}. '
        f'You have {current} items but need {required}.',
        reason, required=required, current=current)


def validate_promotion_rules(promotion: Promotion, lines: List[dict],
                             cart_total: Decimal) -> dict:
    """
    Evaluate the flexible rules of one promotion. Returns
    `{violations: [...], special_pricing: {...} | None}`.
    """
    violations = []
    special_pricing = None
    for rule in _rule_list(promotion):
        rule_type = rule.get('type')
        if rule_type == RULE_TYPE.minimum_quantity_same_promotion:
            minimum = int(rule.get('minimumQuantity') or 0)
            total_quantity = _quantity(lines)
            if total_quantity < minimum:
                needed = minimum - total_quantity
                violations.append(_violation(
                    promotion, 'insufficient_quantity',
                    f'Add {needed} more item{_plural(needed)} from '
                    f'"{promotion.name}" to unlock special pricing',
                    f'Add {needed} more items from this promotion',
                    required=minimum, current=total_quantity))
            elif rule.get('specialPricing'):
                special_pricing = calculate_special_pricing(
                    lines, rule['specialPricing'])
        elif rule_type == RULE_TYPE.minimum_order_value:
            minimum = promotion.minimum_order_value or \
                Decimal(str(rule.get('minimumValue') or 0))
            if cart_total < minimum:
                needed = _money(minimum - cart_total)
                violations.append(_violation(
                    promotion, 'minimum_not_met',
                    f'Add R{needed} more to your order to qualify for '
                    'this promotion',
                    f'Add R{needed} more to cart',
                    required=str(_money(minimum)), current=str(_money(cart_total))))
    return {'violations': violations, 'special_pricing': special_pricing}


def calculate_special_pricing(lines: List[dict], pricing: dict) -> dict:
    current_total = _value(lines)
    value = Decimal(str(pricing.get('value') or 0))
    pricing_type = pricing.get('type')
    if pricing_type == SPECIAL_PRICING.fixed_total:
        return {
            'new_total': _money(value),
            'discount': _money(current_total - value),
        }
    if pricing_type == SPECIAL_PRICING.extra_discount:
        discount = current_total * value / Decimal('100')
        return {
            'new_total': _money(current_total - discount),
            'discount': _money(discount),
        }
    if pricing_type == SPECIAL_PRICING.fixed_per_item:
        new_total = value * _quantity(lines)
        return {
            'new_total': _money(new_total),
            'per_item_price': _money(value),
            'discount': _money(current_total - new_total),
        }
    return {}


def violation_message(violations: List[dict]) -> str:
    if not violations:
        return ''
    if len(violations) == 1:
        return violations[0]['message'] or 'Please check your cart items'
    return (
        f'You have {len(violations)} promotion requirements to meet. '
        'Check individual promotions for details.')


def validate_cart(items: List[dict]) -> Dict:
    lines = build_cart_lines(items)
    cart_total = _value(lines)
    violations = []
    special_pricing = []
    warnings = []

    for promotion_pk, group in group_by_promotion(lines).items():
        promotion = group['promotion']
        try:
            type_violation = validate_promotion_type(promotion, group['lines'])
            result = validate_promotion_rules(
                promotion, group['lines'], cart_total)
        except (TypeError, ValueError, ArithmeticError, AttributeError) as e:
            logger.exception(
                f'Skipping promotion {promotion_pk} during cart validation: {e}')
            warnings.append(
                f'Promotion "{promotion.name}" could not be validated')
            continue
        if type_violation:
            violations.append(type_violation)
        violations.extend(result['violations'])
        if result['special_pricing']:
            special_pricing.append(
                dict(result['special_pricing'], promotion_id=promotion_pk))

    total_savings = sum(
        (entry.get('discount', Decimal('0')) for entry in special_pricing),
        Decimal('0'))
    return {
        'can_proceed': not violations,
        'violations': violations,
        'message': violation_message(violations),
        'messages': [violation['message'] for violation in violations],
        'warnings': warnings,
        'special_pricing': special_pricing,
        'subtotal': _money(cart_total),
        'total_savings': _money(total_savings),
    }


def _rules_config(promotion: Promotion) -> dict:
    rules = promotion.rules or {}
    if isinstance(rules, list):
        merged = {}
        for rule in rules:
            if isinstance(rule, dict):
                merged.update(rule)
        return merged
    return rules if isinstance(rules, dict) else {}


def _rule_list(promotion: Promotion) -> List[dict]:
    rules = promotion.rules or []
    if isinstance(rules, dict):
        rules = [rules]
    return [rule for rule in rules if isinstance(rule, dict)]
