"""
Checks the loaded library config against the typed constraints in
config_validation.yaml. Each leaf of the validation file that has a "type" key
constrains the config value at the same nested key.
"""

# Standard
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type, Union
import builtins

# First Party
import aconfig
import alog

# Local
from .. import constants
from ..utils import nested_get  # pylint: disable=cyclic-import

log = alog.use_channel("CONFG")


## Public ######################################################################


def get_invalid_params(
    config: aconfig.Config,
    validation_config: aconfig.Config,
) -> List[str]:
    """Get the nested keys of every config value that breaks its constraints

    Args:
        config:  aconfig.Config
            The parsed config with any override values
        validation_config:  aconfig.Config
            The parallel config holding the constraints

    Returns:
        invalid_params:  List[str]
            Dot-delimited keys of the invalid values
    """
    invalid_params = [
        key
        for key, param in _parse_validation_config(validation_config).items()
        if not param.validate(nested_get(config, key))
    ]
    for key in invalid_params:
        log.warning("Config value for [%s] is invalid", key)
    return invalid_params


## Parameter Types #############################################################

# pylint: disable=too-few-public-methods

# Mapping from the "type" named in the validation file to its parameter class
_PARAMETER_TYPES: Dict[str, Type["_Parameter"]] = {}


def _parameter_type(type_name: str):
    """Register a parameter class under a validation file type name"""

    def decorator(param_class):
        _PARAMETER_TYPES[type_name] = param_class
        return param_class

    return decorator


def _within(value, lower, upper) -> bool:
    return (lower is None or value >= lower) and (upper is None or value <= upper)


class _Parameter:
    """The constraints on a single config value. Subclasses name the python
    types they accept and narrow the valid values with check().
    """

    ACCEPTS: Tuple[type, ...] = ()

    def __init__(self, optional: bool = False):
        self.optional = optional

    def validate(self, value: Any) -> bool:
        if value is None:
            return self.optional

        # bool subclasses int, so it only counts where it is named
        if not isinstance(value, self.ACCEPTS) or (
            isinstance(value, bool) and bool not in self.ACCEPTS
        ):
            log.debug("Value of type <%s> is not accepted", type(value).__name__)
            return False
        if not self.check(value):
            log.debug("Value [%s] is out of range", value)
            return False
        return True

    def check(self, value: Any) -> bool:
        return True


@_parameter_type("number")
class _NumberParameter(_Parameter):
    """Any int or float within optional inclusive bounds"""

    ACCEPTS = (int, float)

    def __init__(
        self,
        *,
        min: Optional[Union[int, float]] = None,  # pylint: disable=redefined-builtin
        max: Optional[Union[int, float]] = None,  # pylint: disable=redefined-builtin
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.lower = min
        self.upper = max

    def check(self, value: Union[int, float]) -> bool:
        return _within(value, self.lower, self.upper)


@_parameter_type("int")
class _IntParameter(_NumberParameter):
    ACCEPTS = (int,)


@_parameter_type("float")
class _FloatParameter(_NumberParameter):
    ACCEPTS = (float,)


@_parameter_type("bool")
class _BoolParameter(_Parameter):
    ACCEPTS = (bool,)


@_parameter_type("enum")
class _EnumParameter(_Parameter):
    """One of a fixed list of str or int values"""

    ACCEPTS = (str, int)

    def __init__(self, *, values: List[Union[str, int]], **kwargs):
        super().__init__(**kwargs)
        assert isinstance(values, list) and values, "An enum needs at least one value"
        self.values = values

    def check(self, value: Union[str, int]) -> bool:
        return value in self.values


class _SizedParameter(_Parameter):
    """Base for values whose length has optional inclusive bounds"""

    def __init__(
        self,
        *,
        min_len: Optional[int] = None,
        max_len: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.min_len = min_len
        self.max_len = max_len

    def check(self, value) -> bool:
        return _within(len(value), self.min_len, self.max_len)


@_parameter_type("str")
class _StrParameter(_SizedParameter):
    ACCEPTS = (str,)


@_parameter_type("list")
class _ListParameter(_SizedParameter):
    """A list whose items may be required to be of one builtin type"""

    ACCEPTS = (list,)

    def __init__(self, *, item_type: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.item_type = None
        if item_type is not None:
            assert hasattr(builtins, item_type), f"Unknown item_type: {item_type}"
            self.item_type = getattr(builtins, item_type)

    def check(self, value: list) -> bool:
        return super().check(value) and (
            self.item_type is None
            or all(isinstance(item, self.item_type) for item in value)
        )


# pylint: enable=too-few-public-methods

## Parsing #####################################################################


def _parse_validation_config(
    validation_config: aconfig.Config,
) -> Dict[str, _Parameter]:
    """Flatten the validation config into nested key -> parameter"""
    return dict(_iter_parameters(validation_config, []))


def _iter_parameters(
    section: dict,
    path: List[str],
) -> Iterator[Tuple[str, _Parameter]]:
    for key, val in section.items():
        assert isinstance(key, str), "Validation keys must be strings"
        if not isinstance(val, dict):
            continue
        key_path = path + [key]
        type_name = val.get("type")
        param_class = (
            _PARAMETER_TYPES.get(type_name) if isinstance(type_name, str) else None
        )
        if param_class is None:
            yield from _iter_parameters(val, key_path)
            continue
        log.debug3("Found %s parameter at %s", type_name, key_path)
        param_args = {arg: arg_val for arg, arg_val in val.items() if arg != "type"}
        yield constants.NESTED_DICT_DELIM.join(key_path), param_class(**param_args)
