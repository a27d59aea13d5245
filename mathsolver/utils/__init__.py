from mathsolver.utils.ast_utils import (ExprTag
                                        , Node
                                        , children
                                        , is_ast_node
                                        , strip_positions
                                        , walk)
from mathsolver.utils.parser_utils import bound_variables, free_variables
from mathsolver.utils.print_utils import (ExpressionPrinter
                                          , format_expression
                                          , format_report
                                          , format_steps
                                          , number_to_text
                                          , pformat_ast)
