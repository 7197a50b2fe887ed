import warnings
import numpy as np
from deepdiff import DeepDiff
from typing import Any, Dict, Mapping, Sequence, Union


def compare_dicts(dict1: Dict, dict2: Dict,
                  format_output: bool = True,
                  print_result: bool = False) -> Union[str, DeepDiff]:
    """
    Compare two dictionaries with DeepDiff.

    Args:
        dict1: Reference dictionary
        dict2: Dictionary compared to the reference
        format_output: If True returns one line per change, if False the DeepDiff object
        print_result: If True, also prints the result

    Returns:
        Formatted differences string or DeepDiff object
    """
    diff = DeepDiff(dict1, dict2, ignore_order=True, report_repetition=False, verbose_level=2)
    if not diff:
        result = "No differences found. The dictionaries are identical."
    elif format_output:
        result = _format_diff(diff)
    else:
        result = diff

    if print_result:
        print(result)
    return result


def _format_diff(diff: DeepDiff) -> str:
    lines = []
    for change_type, changes in diff.items():
        lines.append(f"{change_type}:")
        if not isinstance(changes, dict):
            lines.append(f"  {changes}")
            continue
        for path, change in changes.items():
            if isinstance(change, dict) and 'old_value' in change:
                lines.append(f"  {path}: {change['old_value']} -> {change['new_value']}")
            else:
                lines.append(f"  {path}: {change}")
    return "\n".join(lines)


# From https://github.com/samuelcolvin/pydantic/blob/fd2991fe6a73819b48c906e3c3274e8e47d0f761/pydantic/utils.py#L200
# (initially from https://stackoverflow.com/questions/3232943/update-value-of-a-nested-dictionary-of-varying-depth)
def deep_update(mapping: Dict[Any, Any], *updating_mappings: Dict[Any, Any],
                overwrite_keys: list = None) -> Dict[Any, Any]:
    """
    Deep update dictionaries with selective overwrite behavior.

    Args:
        mapping: Base dictionary to update
        *updating_mappings: One or more dictionaries to merge in
        overwrite_keys: List of keys where dict values should be overwritten instead of merged
    """
    updated_mapping = mapping.copy()
    overwrite_keys = overwrite_keys or []

    for updating_mapping in updating_mappings:
        for k, v in updating_mapping.items():
            if (k in updated_mapping and
                    isinstance(updated_mapping[k], dict) and
                    isinstance(v, dict) and
                    k not in overwrite_keys):
                updated_mapping[k] = deep_update(updated_mapping[k], v,
                                                 overwrite_keys=overwrite_keys)
            else:
                updated_mapping[k] = v
    return updated_mapping


def get_nested_attr(obj, attr):
    """
    Recursively gets the nested attribute of an object.

    Args:
        obj: The object to get the attribute from.
        attr: A string representing the attribute, potentially nested, e.g., 'flux.NH4'.

    Returns:
        The value of the nested attribute.
    """
    for attribute in attr.split('.'):
        obj = getattr(obj, attribute)
    return obj


def get_all_contributors(contributors, term, dkey):
    # Sum of contributor.term[dkey] over one contributor or an iterable of them; missing keys count as 0
    try:
        iterator = iter(contributors)
    except TypeError:
        return getattr(contributors, term).get(dkey, 0.)
    return sum(getattr(contributor, term).get(dkey, 0.) for contributor in iterator)


def scale_negative_tracers(values: Union[Dict[str, Any], Mapping],
                           conserved_group: Sequence[str],
                           warn: bool = False) -> Dict[str, Any]:
    """
    Remove negative concentrations while conserving the total of a tracer group.

    In every cell where a member of `conserved_group` is negative, the negative
    members are set to zero and the positive members are scaled so that the
    group total is unchanged. Cells whose group total is itself negative are
    left untouched and reported. This is a safeguard meant to run as its own
    step after each tendency application, never inside a forcing function.

    Args:
        values: Mapping of tracer name to concentration (float or array)
        conserved_group: Names of the tracers whose sum must be preserved
        warn: Emit a warning when negative values are found

    Returns:
        New dict with the corrected concentrations (other tracers passed through)
    """
    group = list(conserved_group)
    missing = [name for name in group if name not in values]
    if missing:
        raise ValueError(f"Tracers {missing} of the conserved group are not in the state")

    stacked = np.atleast_1d(np.array([np.asarray(values[name], dtype=np.float64) for name in group]))
    stacked = stacked.reshape(len(group), -1)

    negative = stacked < 0
    cells = negative.any(axis=0)
    result = dict(values)
    if not cells.any():
        return result

    total = stacked.sum(axis=0)
    positive_total = np.where(negative, 0., stacked).sum(axis=0)
    fixable = cells & (total >= 0) & (positive_total > 0)

    if warn:
        warnings.warn(f"Scaling negative tracers in {int(cells.sum())} cell(s)")
    if (cells & ~fixable).any():
        warnings.warn(f"{int((cells & ~fixable).sum())} cell(s) have a negative "
                      f"total for {group}, left unchanged")

    factor = np.where(fixable, total / np.where(positive_total > 0, positive_total, 1.), 1.)
    scaled = np.where(fixable, np.where(negative, 0., stacked * factor), stacked)

    for i, name in enumerate(group):
        original = np.asarray(values[name])
        result[name] = scaled[i].reshape(original.shape) if original.ndim else float(scaled[i][0])
    return result
