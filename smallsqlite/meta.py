"""
Descriptor helpers for table classes.
"""

import typing


class TypeProperty(object):
    """
    A read-only property that is evaluated against the class, whether it is looked up on the
    class itself or on one of its instances.
    """

    def __init__(self, fget: classmethod):
        """
        :param fget: The classmethod called with the owning class.
        """
        self.fget = fget
        self.name = None

    def __set_name__(self, owner, name):
        self.name = name

    def __get__(self, instance, owner):
        if owner is None:
            owner = type(instance)

        return self.fget.__get__(None, owner)()


def typeproperty(func: typing.Callable[[], typing.Any]) -> TypeProperty:
    """
    Turns a function (or classmethod) into a :class:`.TypeProperty`.

    .. code-block:: python3

        @typeproperty
        @classmethod
        def columns(cls):
            return list(cls.iter_columns())
    """
    if not isinstance(func, classmethod):
        func = classmethod(func)

    return TypeProperty(func)
