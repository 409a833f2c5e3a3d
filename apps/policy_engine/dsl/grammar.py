EXPRESSION_GRAMMAR = r"""
    ?start: conditional

    ?conditional: or_expr
                | or_expr "?" conditional ":" conditional  -> ternary

    ?or_expr: and_expr
            | or_expr "||" and_expr        -> or_

    ?and_expr: comparison
             | and_expr "&&" comparison    -> and_

    ?comparison: sum
               | sum "==" sum              -> eq
               | sum "!=" sum              -> ne
               | sum "<" sum               -> lt
               | sum "<=" sum              -> le
               | sum ">" sum               -> gt
               | sum ">=" sum              -> ge

    ?sum: product
        | sum "+" product                  -> add
        | sum "-" product                  -> sub

    ?product: unary
            | product "*" unary            -> mul
            | product "/" unary            -> div
            | product "%" unary            -> mod

    ?unary: power
          | "-" unary                      -> neg
          | "!" unary                      -> not_

    ?power: atom
          | atom "**" unary                -> pow

    ?atom: NUMBER                          -> number
         | "true"                          -> true
         | "false"                         -> false
         | CNAME                           -> variable
         | "(" conditional ")"

    %import common.NUMBER
    %import common.CNAME
    %import common.WS
    %ignore WS
"""
