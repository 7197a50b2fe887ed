# Conversion
day = 86400.  # [s d-1]
degCtoK = 273.15
rho_seawater = 1024.5  # [kg m-3]

# Output metadata, keyed by '<classname>_<pool>'
doutput = {
    "LOBSTER_NO3": {'units': 'mmol N m-3',
                    'longname': 'Nitrate'},
    "LOBSTER_NH4": {'units': 'mmol N m-3',
                    'longname': 'Ammonium'},
    "LOBSTER_P": {'units': 'mmol N m-3',
                  'longname': 'Phytoplankton'},
    "LOBSTER_Z": {'units': 'mmol N m-3',
                  'longname': 'Zooplankton'},
    "LOBSTER_D": {'units': 'mmol N m-3',
                  'longname': 'Small detritus'},
    "LOBSTER_DD": {'units': 'mmol N m-3',
                   'longname': 'Large detritus'},
    "LOBSTER_Dc": {'units': 'mmol C m-3',
                   'longname': 'Small detritus carbon'},
    "LOBSTER_DDc": {'units': 'mmol C m-3',
                    'longname': 'Large detritus carbon'},
    "LOBSTER_DOM": {'units': 'mmol N m-3',
                    'longname': 'Dissolved organic nitrogen'},
    "LOBSTER_DIC": {'units': 'mmol C m-3',
                    'longname': 'Dissolved inorganic carbon'},
    "LOBSTER_ALK": {'units': 'meq m-3',
                    'longname': 'Total alkalinity'},
    "LOBSTER_OXY": {'units': 'mmol O2 m-3',
                    'longname': 'Dissolved oxygen'},
    "LOBSTER_DOC": {'units': 'mmol C m-3',
                    'longname': 'Dissolved organic carbon'},
    "Particles_N": {'units': 'mmol N m-3',
                    'longname': 'Particle nitrogen per box volume'},
    "N_tot": {'units': 'mmol N m-3',
              'longname': 'Total nitrogen'},
}
