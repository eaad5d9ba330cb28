import asyncio
import functools
from concurrent.futures import ThreadPoolExecutor
from tqdm.asyncio import tqdm_asyncio


def async_run(runs, args_list=None, kwargs_list=None, max_workers=None, description=None):
    """Run multiple functions asynchronously on a thread pool.

    Args:
        runs (list): list of functions to run
        args_list (list): list of arguments for each function
        kwargs_list (list): list of keyword arguments for each function
        max_workers (int, optional): maximum number of worker threads to use.
            If None, the default ThreadPoolExecutor behavior is used.
        description (str, optional): description to display in the progress bar.
            No progress bar is shown when it is None.

    Returns:
        list: the outputs, in the order of ``runs``. The first exception raised
        by any run is propagated.
    """
    if args_list is None:
        args_list = [[]] * len(runs)
    if kwargs_list is None:
        kwargs_list = [{}] * len(runs)

    async def _run():
        loop = asyncio.get_running_loop()
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            tasks = [loop.run_in_executor(executor, functools.partial(run, *args, **kwargs))
                     for run, args, kwargs, in zip(runs, args_list, kwargs_list)]

            if description:
                return await tqdm_asyncio.gather(*tasks, desc=description)
            else:
                return await asyncio.gather(*tasks)

    return asyncio.run(_run())


def batch_run(max_workers=None, description=None):
    """
    Create a decorator that runs a function over a batch of inputs in parallel.
    The batch size is inferred as the length of the longest argument or keyword argument.

    Args:
        max_workers (int, optional): Maximum number of worker threads to use.
            If None, the default ThreadPoolExecutor behavior is used.
        description (str, optional): Description to display in the progress bar.

    Returns:
        callable: A decorator turning ``fun`` into a function that processes batches of inputs.

    NOTE:
        Arguments that have __len__ (like lists or arrays) are treated as batches and are not broadcasted.
        Scalars are broadcasted. Wrap per-call values that have __len__ (e.g. a ParameterSet) in a list
        of the batch length.

    Example:
        >>> @batch_run(max_workers=4, description="Scoring candidates")
        >>> def my_function(x, y):
        >>>     return x + y
        >>> x = [1, 2, 3, 4, 5]
        >>> y = 10
        >>> outputs = my_function(x, y)
        >>> # outputs will be [11, 12, 13, 14, 15]
    """

    def decorator(fun):

        def _fun(*args, **kwargs):

            # We try to infer the batch size from the args
            all_args = args + tuple(kwargs.values())
            lengths = [len(arg) for arg in all_args if hasattr(arg, '__len__')]
            if len(lengths) == 0:
                raise ValueError("At least one argument must be a batch (have __len__).")
            batch_size = max(lengths)

            # broadcast the batch size to all args
            args = [arg if hasattr(arg, '__len__') else [arg] * batch_size for arg in args]
            kwargs = {k: v if hasattr(v, '__len__') else [v] * batch_size for k, v in kwargs.items()}

            # assert that all args and kwargs have the same length
            lengths = [len(arg) for arg in args] + [len(v) for v in kwargs.values()]
            if len(set(lengths)) != 1:
                raise ValueError("All arguments and keyword arguments must have the same length.")

            args_list = [tuple(aa[i] for aa in args) for i in range(batch_size)]
            kwargs_list = [{k: kwargs[k][i] for k in kwargs} for i in range(batch_size)]

            return async_run([fun] * batch_size, args_list=args_list, kwargs_list=kwargs_list,
                             max_workers=max_workers, description=description)

        return _fun

    return decorator
