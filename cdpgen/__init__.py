import importlib

mod = "cdpgen"
class LazyLoader:
    """
    Lazy loader for the cdpgen functions to speed up startup time.
    """
    def __init__(self, mappings):
        self._modules = {}
        self._mappings = mappings

    def _load_module(self, module_name):
        if module_name not in self._modules:
            self._modules[module_name] = importlib.import_module(module_name)
        return self._modules[module_name]

    def __getattr__(self, item):
        if item in self._mappings:
            module_name, func_name = self._mappings[item]
            module = self._load_module(module_name)
            return getattr(module, func_name)
        else:
            return self._load_module(f"{mod}.{item}")

# Define the functions and their corresponding module paths
_mappings = {
    "compile_protocol": (f"{mod}.compiler", "compile_protocol"),
    "compile_document": (f"{mod}.compiler", "compile_document"),
    "check_protocol": (f"{mod}.compiler", "check_protocol"),
    "convert_cdp_to_java": (f"{mod}.compiler", "convert_cdp_to_java"),
    "convert_cdp_to_python": (f"{mod}.compiler", "convert_cdp_to_python"),
    "load_protocol": (f"{mod}.schema", "load_protocol"),
    "save_protocol": (f"{mod}.schema", "save_protocol"),
    "parse_protocol": (f"{mod}.schema", "parse_protocol"),
    "resolve_references": (f"{mod}.resolver", "resolve_references"),
    "map_types": (f"{mod}.typemapper", "map_types"),
    "plan_protocol": (f"{mod}.planner", "plan_protocol"),
    "CompilationError": (f"{mod}.errors", "CompilationError"),
}

_lazy_loader = LazyLoader(_mappings)

def __getattr__(name):
    return getattr(_lazy_loader, name)
