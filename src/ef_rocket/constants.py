# --- Well-known type names ---------------------------------------------------
# Types are matched by simple name only, so any library that declares a type
# with one of these names is treated the same way.

DB_SET = "DbSet"
IQUERYABLE = "IQueryable"
INT32 = "Int32"
EXPRESSION = "Expression"

# C# keyword types -> CLR type names
PREDEFINED_TYPES = {
    "bool": "Boolean",
    "byte": "Byte",
    "sbyte": "SByte",
    "char": "Char",
    "decimal": "Decimal",
    "double": "Double",
    "float": "Single",
    "int": "Int32",
    "uint": "UInt32",
    "nint": "IntPtr",
    "nuint": "UIntPtr",
    "long": "Int64",
    "ulong": "UInt64",
    "short": "Int16",
    "ushort": "UInt16",
    "object": "Object",
    "string": "String",
    "dynamic": "Object",
    "void": "Void",
}
