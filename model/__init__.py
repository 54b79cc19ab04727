def load_all_models():
    import model.user                                    # noqa: F401
    import model.token                                   # noqa: F401
    import model.profiles.admin                          # noqa: F401
    import model.profiles.builder                        # noqa: F401
    import model.property.property                       # noqa: F401
    import model.visit                                   # noqa: F401
    import model.social.models                           # noqa: F401
    import model.property_view                           # noqa: F401
    import model.notification                            # noqa: F401
    import model.chat                                    # noqa: F401
    import model.city                                    # noqa: F401
