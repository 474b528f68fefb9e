"""Functions made of named basic blocks, and the program that holds them."""


class Function:
    """A function: a name, an argument count and its basic blocks."""

    def __init__(self, name, nargs):
        self.name = name
        self.nargs = nargs
        self.first_bb = None
        self._blocks = {}

    def add_block(self, name, stmts):
        """Register block ``name``; return False if it already exists."""
        if name in self._blocks:
            return False
        self._blocks[name] = stmts
        return True

    def block(self, name):
        """Return the statements of block ``name``, or None."""
        return self._blocks.get(name)

    def first_block(self):
        """Return the statements of the entry block, or None."""
        if self.first_bb is None:
            return None
        return self.block(self.first_bb)

    def __repr__(self):
        return f"Function({self.name!r}, {self.nargs})"


class Program:
    """A collection of functions looked up by name."""

    def __init__(self):
        self._functions = {}

    def add_function(self, function):
        """Register ``function``; return False if its name is taken."""
        if function.name in self._functions:
            return False
        self._functions[function.name] = function
        return True

    def function(self, name):
        """Return the function called ``name``, or None."""
        return self._functions.get(name)